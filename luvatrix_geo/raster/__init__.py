from .canvas import fill_rect, new_canvas
from .draw_lines import draw_polyline
from .draw_markers import draw_markers
from .draw_text import draw_text, draw_text_centered, text_size
from .layers import LayerCache

__all__ = [
    "LayerCache",
    "draw_markers",
    "draw_polyline",
    "draw_text",
    "draw_text_centered",
    "fill_rect",
    "new_canvas",
    "text_size",
]
