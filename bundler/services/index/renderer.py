"""Index page rendering.

The index page is a pure function of the ordered manifest keys and a
versioned template. Templates are compiled once; a malformed template is a
configuration error, never a per-run one.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import jinja2
from jinja2 import ChainableUndefined, Environment, select_autoescape

from bundler.services.errors import TemplateError

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"
DEFAULT_TEMPLATE_NAME = "index.html.j2"
DEFAULT_TEMPLATE_VERSION = "1"


@dataclass(frozen=True)
class IndexTemplate:
    """Template source plus the version it is published under.

    Attributes:
        source: Jinja2 template text
        version: Template version, exposed to the template as template_version
        origin: Where the source was loaded from
    """

    source: str
    version: str = DEFAULT_TEMPLATE_VERSION
    origin: str = "<string>"


def load_index_template(path: Optional[Path] = None, version: Optional[str] = None) -> IndexTemplate:
    """Load a template from disk, or the packaged default.

    Args:
        path: Custom template file (None for the packaged default)
        version: Version label (defaults to the packaged version, or "custom")

    Raises:
        TemplateError: If the file cannot be read
    """
    if path is None:
        path = DEFAULT_TEMPLATE_DIR / DEFAULT_TEMPLATE_NAME
        version = version or DEFAULT_TEMPLATE_VERSION
    try:
        source = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateError(f"Cannot read index template {path}: {e}") from e
    return IndexTemplate(source=source, version=version or "custom", origin=str(path))


class IndexRenderer:
    """Renders manifest keys into an index document.

    Undefined variables render as empty text so that any manifest,
    including an empty one, renders successfully against a valid template.
    """

    def __init__(self, template: Optional[IndexTemplate] = None, title: str = "Archive index"):
        """Compile the template.

        Args:
            template: Template to use (packaged default if None)
            title: Page title exposed to the template

        Raises:
            TemplateError: If the template is malformed
        """
        self.template = template or load_index_template()
        self.title = title
        self.env = Environment(
            autoescape=select_autoescape(["html", "xml"], default_for_string=True),
            undefined=ChainableUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        try:
            self._compiled = self.env.from_string(self.template.source)
        except jinja2.TemplateSyntaxError as e:
            raise TemplateError(
                f"Malformed index template {self.template.origin} line {e.lineno}: {e.message}"
            ) from e

    def render(self, keys: Iterable[str], generated_at: Optional[datetime] = None) -> bytes:
        """Render the index for keys in the given order.

        Args:
            keys: Manifest keys, in manifest order
            generated_at: Optional timestamp shown on the page

        Returns:
            UTF-8 encoded document

        Raises:
            TemplateError: If the template fails at render time, including
                errors raised by its own expressions (TypeError and the like)
        """
        try:
            text = self._compiled.render(
                keys=list(keys),
                title=self.title,
                generated_at=generated_at.isoformat(timespec="seconds") if generated_at else None,
                template_version=self.template.version,
            )
        except Exception as e:
            raise TemplateError(f"Index template {self.template.origin} failed to render: {e}") from e
        return text.encode("utf-8")


def render_index(
    keys: Iterable[str],
    template: Optional[IndexTemplate] = None,
    title: str = "Archive index",
) -> bytes:
    """Render an index page in one call."""
    return IndexRenderer(template, title=title).render(keys)
