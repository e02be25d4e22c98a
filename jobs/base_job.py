import traceback
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd
from PIL import Image, ImageDraw, ImageFont
from tqdm import tqdm

from grapher.core import Area, GrapherError, parse_hex_color
from grapher.expressions.base import default_library
from grapher.render import render_expressions


class Job(ABC):
    """An abstract base class for batch graph rendering jobs.

    A job generates a table of expressions with their metadata, renders every
    expression to its own image, and summarizes the results as contact
    sheets grouped by one of the metadata columns.
    """

    summary_col = "family"

    def __init__(self, job_name: str, data_dir: str = "data",
                 viewport: Sequence[float] = (-5.0, 5.0, 5.0, -5.0), scale: float = 40.0,
                 grid: bool = True, workers: Optional[int] = None, tile_columns: int = 4, **kwargs):
        """Initializes the Job instance, setting up the viewport, paths and directories."""
        self.job_name = job_name
        self.data_dir = Path(data_dir)
        self.area = Area.from_corners(*viewport)
        self.scale = scale
        self.grid = grid
        self.workers = workers
        self.tile_columns = tile_columns
        self.library = default_library()
        self._setup_paths()
        self._create_directories()

    def _setup_paths(self):
        """Initializes all necessary directory and file paths."""
        job_root = self.data_dir / self.job_name
        self.images_dir = job_root / "images"
        self.summary_dir = job_root / "summaries"
        self.metadata_path = job_root / "metadata.csv"

    def _create_directories(self):
        """Ensures that all required directories exist, creating them if necessary."""
        for path in [self.images_dir, self.summary_dir]:
            path.mkdir(parents=True, exist_ok=True)

    @abstractmethod
    def generate_expressions(self) -> pd.DataFrame:
        """Generates expression strings (column 'expression', optional 'color') and their metadata."""
        pass

    # --- Main Orchestration ---
    def run(self) -> pd.DataFrame:
        """
        Executes the full pipeline. If metadata.csv exists, load existing data.
        Otherwise, generate and render all expressions and write the contact sheets.
        """
        if self.metadata_path.exists():
            print(f"✅ Found existing render data at '{self.metadata_path}'. Skipping generation.")
            return pd.read_csv(self.metadata_path)

        print("🔍 No existing render data found. Starting full generation pipeline...")
        # 1. Generate and render all expressions
        rendered_df = self._generate_and_render()
        # 2. Summarize the renders on contact sheets
        self._generate_summaries(rendered_df)
        return rendered_df

    # --- Step 1: Expression Generation & Rendering ---
    def _generate_and_render(self) -> pd.DataFrame:
        """Generates expressions, renders them as images, and saves metadata."""
        df = self.generate_expressions()
        filepaths = []
        for i, row in tqdm(df.iterrows(), desc="Rendering graphs", unit="graph", leave=False, total=len(df)):
            output_path = self.images_dir / f"{i}.png"
            expression = str(row["expression"])
            try:
                color = parse_hex_color(row["color"]) if isinstance(row.get("color"), str) else None
                canvas = render_expressions(self.area, self.scale, [(expression, color)],
                                            self.grid, self.workers, self.library)
                canvas.save_png(str(output_path))
                filepaths.append(str(output_path))
            except (GrapherError, ValueError) as e:
                print(f"❌ Error rendering expression for row {i} ('{expression[:50]}'): {e}")
                print(traceback.format_exc())
                filepaths.append(None)

        df["render_filepath"] = filepaths
        df.dropna(subset=["render_filepath"], inplace=True)
        df.to_csv(self.metadata_path, index=False)

        print(f"✅ Rendered {len(df)} graphs for job '{self.job_name}'")
        print(f"✅ Images saved to: {self.images_dir}")
        print(f"✅ Metadata saved to: {self.metadata_path}")
        return df

    # --- Step 2: Contact Sheets ---
    def _generate_summaries(self, rendered_df: pd.DataFrame) -> List[Path]:
        """Writes one contact sheet per value of the summary column."""
        print("\n🖼️ Generating contact sheets")
        if rendered_df.empty:
            return []
        groups = rendered_df.groupby(self.summary_col) if self.summary_col in rendered_df.columns \
            else [(self.job_name, rendered_df)]
        sheets = []
        for name, group in groups:
            sheet_path = self.summary_dir / f"{name}.png"
            self._create_contact_sheet(group, sheet_path)
            sheets.append(sheet_path)
        print(f"✅ Contact sheets saved to: {self.summary_dir}")
        return sheets

    def _create_contact_sheet(self, group: pd.DataFrame, sheet_path: Path):
        """Lays the labelled renders of a group out on a grid and saves it."""
        tiles = []
        for _, row in group.iterrows():
            img = Image.open(row["render_filepath"]).convert("RGB")
            img = self._add_label_to_image(img, str(row["expression"]))
            tiles.append(self._add_border_to_image(img, "gray"))
        if not tiles:
            return
        columns = min(self.tile_columns, len(tiles))
        rows = (len(tiles) + columns - 1) // columns
        tile_w, tile_h = tiles[0].size
        sheet = Image.new("RGB", (columns * tile_w, rows * tile_h), "white")
        for i, tile in enumerate(tiles):
            sheet.paste(tile, ((i % columns) * tile_w, (i // columns) * tile_h))
        sheet.save(sheet_path)

    # --- Static Utility Methods ---
    @staticmethod
    def _add_label_to_image(image: Image.Image, label: str) -> Image.Image:
        """Writes a text label in the upper left corner of an image."""
        draw = ImageDraw.Draw(image)
        try:
            font = ImageFont.truetype("DejaVuSans.ttf", 14)
        except OSError:
            font = ImageFont.load_default()
        draw.text((6, 6), label, fill="black", font=font)
        return image

    @staticmethod
    def _add_border_to_image(image: Image.Image, color: str, width: int = 4) -> Image.Image:
        """Adds a colored border to an image."""
        bordered_img = Image.new("RGB", (image.width + 2*width, image.height + 2*width), color)
        bordered_img.paste(image, (width, width))
        return bordered_img
