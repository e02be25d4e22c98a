# grapher/render.py
"""
Command-line entry point and rendering helpers.

Usage:
    python -m grapher.render single "{(-5, 5), (5, -5)}" 100 "x^2 + y^2 == 4" "#0000ff" "y == sin(x)"
    python -m grapher.render csv output/curves.csv "{(-5, 5), (5, -5)}" 50

Each expression may be followed by a '#RRGGBB' color token. Every expression
is parsed and classified before anything is drawn, so a malformed viewport,
scale or expression aborts the run without writing an image.
"""
import argparse
import math
import os
import re
import sys
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from .canvas import Canvas
from .core import Area, Color, GrapherError, parse_hex_color
from .expressions.base import FunctionLibrary, default_library
from .expressions.classifier import classify
from .rasterizer import draw

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")

ExpressionSpec = Tuple[str, Optional[Color]]


def parse_viewport(text: str) -> Area:
    """
    Parses a viewport written as '{(x0, y0), (x1, y1)}' or 'x0,y0,x1,y1'.

    Raises:
        ValueError: If the text does not hold exactly four numbers
        ValidationError: If the corners do not form a valid viewport

    Examples:
        >>> parse_viewport("{(-5, 5), (5, -5)}")
        Area(Coord(x=-5.0, y=5.0), Coord(x=5.0, y=-5.0))
    """
    numbers = _NUMBER_RE.findall(text)
    if len(numbers) != 4 or _NUMBER_RE.sub("", text).strip(" {}(),") != "":
        raise ValueError(f"Invalid viewport '{text}', expected '{{(x0, y0), (x1, y1)}}'")
    return Area.from_corners(*(float(n) for n in numbers))


def parse_expression_args(tokens: Sequence[str]) -> List[ExpressionSpec]:
    """
    Pairs each expression with the color token following it, if any.

    Raises:
        ValueError: If a color token is malformed or comes before any expression

    Examples:
        >>> parse_expression_args(["y == x", "#ff0000", "r == 2"])
        [('y == x', (255, 0, 0, 255)), ('r == 2', None)]
    """
    specs: List[ExpressionSpec] = []
    for token in tokens:
        if token.startswith("#"):
            if not specs or specs[-1][1] is not None:
                raise ValueError(f"Color '{token}' does not follow an expression")
            specs[-1] = (specs[-1][0], parse_hex_color(token))
        else:
            specs.append((token, None))
    return specs


def render_expressions(
    area: Area,
    scale: float,
    expressions: Sequence[ExpressionSpec],
    grid: bool = True,
    workers: Optional[int] = None,
    library: Optional[FunctionLibrary] = None,
) -> Canvas:
    """
    Renders expressions, in order, onto a new canvas.

    Args:
        area: Viewport to render
        scale: Pixels per coordinate unit
        expressions: (text, color) pairs, a None color uses the relation color
        grid: Whether to draw the grid and axes first
        workers: Thread pool size for each drawing pass
        library: Function library, defaults to the standard one

    Raises:
        ValidationError, ParseError, EqualityCountError: before anything is drawn
    """
    library = library if library is not None else default_library()
    canvas = Canvas(area, scale)
    variants = [(classify(text, library), color) for text, color in expressions]
    if grid:
        canvas.draw_grid()
    for variant, color in variants:
        draw(canvas, variant, color, workers=workers)
    return canvas


## --- CSV Processing Utility ---
def render_from_csv(
    csv_path: str,
    area: Area,
    scale: float,
    output_dir: Optional[str] = None,
    expression_col: str = "expression",
    color_col: str = "color",
    grid: bool = True,
    workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    Batch renders one image per CSV row.

    Reads a CSV with an expression column and an optional color column,
    renders each row on its own canvas, saves the images, and writes an
    updated CSV with the image paths. A row that fails is reported and gets
    an empty path; the remaining rows are still rendered.

    Output:
        - Images saved to: {output_dir}/images/{row_index}.png
        - Updated CSV saved to: {output_dir}/rendered.csv

    Raises:
        FileNotFoundError: If the input CSV file doesn't exist
        KeyError: If the expression column isn't found in the CSV
    """
    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"Input CSV not found: {csv_path}")

    df = pd.read_csv(csv_path)
    if expression_col not in df.columns:
        raise KeyError(f"Column '{expression_col}' not found in {csv_path}")

    if output_dir is None:
        output_dir = os.path.join("output", os.path.splitext(os.path.basename(csv_path))[0])
    image_output_dir = os.path.join(output_dir, "images")
    os.makedirs(image_output_dir, exist_ok=True)

    library = default_library()
    render_filepaths = []
    for i, row in df.iterrows():
        expression = str(row[expression_col])
        output_path = os.path.join(image_output_dir, f"{i}.png")
        try:
            color = _row_color(row, color_col)
            canvas = render_expressions(area, scale, [(expression, color)], grid, workers, library)
            canvas.save_png(output_path)
            render_filepaths.append(output_path)
        except (GrapherError, ValueError) as e:
            print(f"❌ Error processing row {i} ('{expression[:50]}'): {e}")
            render_filepaths.append("")

    df["render_filepath"] = render_filepaths
    rendered_csv_path = os.path.join(output_dir, "rendered.csv")
    df.to_csv(rendered_csv_path, index=False)
    print(f"\n✅ Wrote updated CSV with filepaths to: {rendered_csv_path}")
    return df


def _row_color(row: pd.Series, color_col: str) -> Optional[Color]:
    value = row.get(color_col)
    if value is None or (isinstance(value, float) and math.isnan(value)) or str(value).strip() == "":
        return None
    return parse_hex_color(str(value).strip())


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main execution function with command-line parsing."""
    parser = argparse.ArgumentParser(
        description="Render mathematical relations over a viewport to PNG images.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    # --- Parser for rendering expressions into one image ---
    parser_single = subparsers.add_parser("single", help="Render expressions into a single image.")
    parser_single.add_argument("viewport", type=str, help="Viewport corners, e.g. '{(-5, 5), (5, -5)}'.")
    parser_single.add_argument("scale", type=float, help="Pixels per coordinate unit.")
    parser_single.add_argument("expressions", nargs="+",
                               help="Expressions, each optionally followed by a '#RRGGBB' color.")
    parser_single.add_argument("-o", "--output", type=str, default="out.png", help="Output PNG path.")
    parser_single.add_argument("--no-grid", action="store_true", help="Don't draw the grid and axes.")
    parser_single.add_argument("--workers", type=int, default=None, help="Drawing threads per pass.")

    # --- Parser for rendering from a CSV file ---
    parser_csv = subparsers.add_parser("csv", help="Render every expression of a CSV file.")
    parser_csv.add_argument("csv_path", type=str, help="CSV file with an expression column.")
    parser_csv.add_argument("viewport", type=str, help="Viewport corners, e.g. '{(-5, 5), (5, -5)}'.")
    parser_csv.add_argument("scale", type=float, help="Pixels per coordinate unit.")
    parser_csv.add_argument("--output-dir", type=str, default=None, help="Defaults to output/<csv name>.")
    parser_csv.add_argument("--col", type=str, default="expression", help="Column with expressions.")
    parser_csv.add_argument("--color-col", type=str, default="color", help="Column with '#RRGGBB' colors.")
    parser_csv.add_argument("--no-grid", action="store_true", help="Don't draw the grid and axes.")
    parser_csv.add_argument("--workers", type=int, default=None, help="Drawing threads per pass.")

    args = parser.parse_args(argv)

    # --- Execute the chosen command ---
    try:
        area = parse_viewport(args.viewport)
        if args.command == "single":
            expressions = parse_expression_args(args.expressions)
            print(f"Rendering {len(expressions)} expression(s) over {area}...")
            canvas = render_expressions(area, args.scale, expressions, not args.no_grid, args.workers)
            canvas.save_png(args.output)
            print(f"✅ Saved {canvas.width}x{canvas.height} image to: {args.output}")
        elif args.command == "csv":
            print(f"Rendering CSV '{args.csv_path}' over {area}...")
            render_from_csv(args.csv_path, area, args.scale, args.output_dir, args.col, args.color_col,
                            not args.no_grid, args.workers)
    except (GrapherError, ValueError, KeyError, OSError) as e:
        print(f"❌ {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
