"""Index page generation for archives."""

from .renderer import (
    IndexRenderer,
    IndexTemplate,
    load_index_template,
    render_index,
)

__all__ = [
    "IndexRenderer",
    "IndexTemplate",
    "load_index_template",
    "render_index",
]
