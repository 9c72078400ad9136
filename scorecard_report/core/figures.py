"""
Figure Rendering

Every chart in the report is rendered to finished PNG bytes before it is
embedded in a sheet: the figure is saved into a memory buffer and closed,
so the caller only ever holds complete images.
"""

from io import BytesIO

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.figure import Figure


CM_PER_INCH = 2.54


def cm_to_inches(width_cm: float, height_cm: float) -> tuple:
    """Figure size in inches for a width/height given in centimetres."""
    return (width_cm / CM_PER_INCH, height_cm / CM_PER_INCH)


def new_figure(width_cm: float, height_cm: float, nrows: int = 1, ncols: int = 1):
    """Create a figure (and axes grid) sized in centimetres."""
    return plt.subplots(nrows, ncols, figsize=cm_to_inches(width_cm, height_cm), squeeze=False)


def render_png(fig: Figure, dpi: int = 96) -> bytes:
    """Save a figure to PNG bytes and close it."""
    buffer = BytesIO()
    try:
        fig.savefig(buffer, format="png", dpi=dpi)
    finally:
        plt.close(fig)
    return buffer.getvalue()
