"""Tests for index page rendering.

Run with: uv run pytest bundler/services/tests/unit/test_index_renderer.py -v
"""

from datetime import datetime

import pytest

from bundler.services.errors import TemplateError
from bundler.services.index import (
    IndexRenderer,
    IndexTemplate,
    load_index_template,
    render_index,
)


class TestDefaultTemplate:
    """Tests for the packaged template."""

    @pytest.mark.unit
    def test_lists_keys_in_order(self):
        html = render_index(["b.png", "a.png", "c.png"]).decode("utf-8")

        positions = [html.index(f"<figcaption>{key}</figcaption>") for key in ["b.png", "a.png", "c.png"]]
        assert positions == sorted(positions)
        assert "3 file(s)" in html

    @pytest.mark.unit
    def test_empty_manifest_renders(self):
        html = render_index([]).decode("utf-8")

        assert "0 file(s)" in html
        assert "<figcaption>" not in html

    @pytest.mark.unit
    def test_keys_are_escaped_and_urlencoded(self):
        html = render_index(["<b>&.png", "a b.png"]).decode("utf-8")

        assert "<figcaption>&lt;b&gt;&amp;.png</figcaption>" in html
        assert 'href="a%20b.png"' in html
        assert "<b>&.png" not in html

    @pytest.mark.unit
    def test_title_and_version(self):
        html = IndexRenderer(title="Holiday photos").render(["a.png"]).decode("utf-8")

        assert "<title>Holiday photos</title>" in html
        assert "template v1" in html

    @pytest.mark.unit
    def test_generated_at_shown_when_given(self):
        html = IndexRenderer().render(["a.png"], generated_at=datetime(2024, 5, 17, 12, 30, 45))

        assert b"generated 2024-05-17T12:30:45" in html

    @pytest.mark.unit
    def test_output_is_deterministic(self):
        renderer = IndexRenderer()
        assert renderer.render(["a.png", "b.png"]) == renderer.render(["a.png", "b.png"])

    @pytest.mark.unit
    def test_accepts_any_iterable(self):
        renderer = IndexRenderer()
        assert renderer.render(iter(["a.png"])) == renderer.render(("a.png",))


class TestCustomTemplates:
    """Tests for user supplied templates."""

    @pytest.mark.unit
    def test_string_template(self):
        template = IndexTemplate("{% for key in keys %}{{ key }};{% endfor %}", version="7")
        assert IndexRenderer(template).render(["a", "b"]) == b"a;b;"

    @pytest.mark.unit
    def test_template_version_exposed(self):
        template = IndexTemplate("v{{ template_version }}", version="7")
        assert IndexRenderer(template).render([]) == b"v7"

    @pytest.mark.unit
    def test_unknown_variables_render_empty(self):
        template = IndexTemplate("[{{ nothing.here }}]")
        assert IndexRenderer(template).render([]) == b"[]"

    @pytest.mark.unit
    def test_load_from_file(self, temp_dir):
        path = temp_dir / "index.j2"
        path.write_text("{{ keys | join(',') }}", encoding="utf-8")

        template = load_index_template(path)

        assert template.version == "custom"
        assert template.origin == str(path)
        assert IndexRenderer(template).render(["a", "b"]) == b"a,b"

    @pytest.mark.unit
    def test_load_with_explicit_version(self, temp_dir):
        path = temp_dir / "index.j2"
        path.write_text("x", encoding="utf-8")

        assert load_index_template(path, version="2024-05").version == "2024-05"

    @pytest.mark.unit
    def test_missing_file_raises(self, temp_dir):
        with pytest.raises(TemplateError, match="Cannot read index template"):
            load_index_template(temp_dir / "nope.j2")

    @pytest.mark.unit
    def test_malformed_template_rejected_at_construction(self):
        with pytest.raises(TemplateError, match="Malformed index template"):
            IndexRenderer(IndexTemplate("{% for key in keys %}"))

    @pytest.mark.unit
    def test_render_time_failure_raises_template_error(self):
        template = IndexTemplate("{{ missing() }}")
        renderer = IndexRenderer(template)

        with pytest.raises(TemplateError):
            renderer.render(["a"])

    @pytest.mark.unit
    def test_expression_error_raises_template_error(self):
        """Test errors from template expressions are wrapped, not leaked."""
        renderer = IndexRenderer(IndexTemplate("{% for k in keys %}{{ k + 1 }}{% endfor %}"))

        assert renderer.render([]) == b""
        with pytest.raises(TemplateError, match="failed to render"):
            renderer.render(["a.png"])
