import itertools

import pandas as pd

from grapher.expressions.classifier import classify
from jobs.base_job import Job


class FamiliesJob(Job):
    """
    A batch job rendering parameterized families of curves and regions.

    Each family is a template with one free parameter `a`. The job renders
    every (family, parameter, color) combination, which makes it a quick way
    to eyeball all rendering strategies side by side: explicit and polar
    tracing, implicit sign-change scanning and predicate filling.
    """
    # --- expression templates, one free parameter each ---
    templates = {
        "parabola": "y == {a}*x^2",
        "sine": "y == sin({a}*x)",
        "rose": "r == 3*cos({a}*theta)",
        "ring": "x^2 + y^2 == {a}^2",
        "disk": "x^2 + y^2 <= {a}^2",
    }

    def __init__(self, job_name=None, parameters=(1, 2, 3), colors=("#000000", "#1f77b4"), **kwargs):
        """Initializes the FamiliesJob."""
        self.parameters = list(parameters)
        self.colors = list(colors)
        super().__init__(job_name=job_name or "families", **kwargs)

    def _create_expression_record(self, params):
        """Builds one expression and its metadata from a (family, a, color) tuple."""
        family, a, color = params
        expression = self.templates[family].format(a=a)
        return {
            "family": family,
            "parameter": a,
            "color": color,
            "kind": type(classify(expression, self.library)).__name__,
            "expression": expression,
        }

    def generate_expressions(self):
        """Generates a DataFrame of expressions over the family x parameter x color grid."""
        param_grid = [list(self.templates), self.parameters, self.colors]
        records = [self._create_expression_record(params) for params in itertools.product(*param_grid)]
        df = pd.DataFrame(records)
        print(f"🔍 Generated {len(df)} expressions across {len(self.templates)} families")
        return df
