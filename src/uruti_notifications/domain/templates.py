"""
Uruti Notifications - Template Management.

Static catalog of HTML email documents and the rendering engine for the
handlebars-style mini-language they are written in.

The layout is composed with Jinja2 once, when the catalog is built. At
runtime only ``{{name}}`` placeholders and ``{{#if name}}...{{else}}...{{/if}}``
blocks are resolved, so rendering never depends on Jinja's parser and never
fails on missing data.

Architecture Layer: Domain
Principles: Read-only Registry, Total Functions, Immutability
"""
from __future__ import annotations

import html
import re
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

import structlog
from jinja2 import DictLoader, Environment, StrictUndefined, TemplateError
from markupsafe import Markup, escape
from pydantic import BaseModel, Field

from .entities import template_name_for
from .template_content import DEFAULT_FRAGMENT, FRAGMENTS, LAYOUT_TEMPLATE, TemplateFragment

logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATE_NAME = "default"
LINE_ITEMS_FIELD = "saleItems"
LINE_ITEMS_PLACEHOLDER = "saleItemsTable"

# Innermost block only: neither branch may contain another opening marker.
_CONDITIONAL_PATTERN = re.compile(
    r"\{\{#if\s+(\w+)\s*\}\}"
    r"((?:(?!\{\{#if)[\s\S])*?)"
    r"(?:\{\{else\}\}((?:(?!\{\{#if)[\s\S])*?))?"
    r"\{\{/if\}\}"
)
_OPEN_MARKER = "{{#if"
_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")
_LEFTOVER_TOKEN_PATTERN = re.compile(r"\{\{[^{}]*\}\}")

_HEAD_PATTERN = re.compile(r"<head\b.*?</head>", re.IGNORECASE | re.DOTALL)
_BLOCK_BREAK_PATTERN = re.compile(r"<(br|/p|/div|/tr|/h[1-6]|/li)\b[^>]*>", re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]+>")
_BLANK_LINES_PATTERN = re.compile(r"\n\s*\n+")
_INLINE_SPACE_PATTERN = re.compile(r"[ \t]+")


class TemplateDocument(BaseModel):
    """A named HTML email document written in the runtime mini-language."""
    name: str = Field(..., min_length=1)
    header_title: str
    html: str

    model_config = {"frozen": True}


class TemplateCatalog(Mapping[str, TemplateDocument]):
    """
    Read-only registry of template documents keyed by template name.

    Built once at startup. Unknown names resolve to the ``default`` document
    through :meth:`resolve`, which never fails.
    """

    def __init__(
        self,
        brand_name: str = "Uruti Saluni",
        brand_tagline: str = "Premium Salon & Spa",
        fragments: Mapping[str, TemplateFragment] | None = None,
        year: int | None = None,
    ) -> None:
        env = Environment(
            loader=DictLoader({"layout.html": LAYOUT_TEMPLATE}),
            autoescape=True,
            undefined=StrictUndefined,
        )
        layout = env.get_template("layout.html")
        build_year = year or datetime.now(timezone.utc).year
        documents: dict[str, TemplateDocument] = {}
        sources = {**(FRAGMENTS if fragments is None else fragments), DEFAULT_TEMPLATE_NAME: DEFAULT_FRAGMENT}
        for name, fragment in sources.items():
            try:
                body = layout.render(
                    brand_name=brand_name,
                    brand_tagline=brand_tagline,
                    header_title=Markup(fragment.header_title),
                    content=Markup(fragment.content),
                    year=build_year,
                )
            except TemplateError as e:
                logger.error("template_build_failed", template_name=name, error=str(e))
                raise
            key = template_name_for(name)
            documents[key] = TemplateDocument(name=key, header_title=fragment.header_title, html=body)
        self._documents = MappingProxyType(documents)
        logger.info("template_catalog_initialized", template_count=len(documents))

    def __getitem__(self, name: str) -> TemplateDocument:
        return self._documents[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def resolve(self, name: str | None) -> TemplateDocument:
        """Look up a document by (unnormalised) name, falling back to ``default``."""
        if name:
            document = self._documents.get(template_name_for(name))
            if document is not None:
                return document
        logger.debug("template_fallback_to_default", template_name=name)
        return self._documents[DEFAULT_TEMPLATE_NAME]


class TemplateEngine:
    """
    Renderer for the ``{{name}}`` / ``{{#if}}`` mini-language.

    Pure and total: no I/O, no shared mutable state, and every input yields a
    string free of template markers.
    """

    def __init__(self, catalog: TemplateCatalog | None = None) -> None:
        self._catalog = catalog or TemplateCatalog()

    @property
    def catalog(self) -> TemplateCatalog:
        return self._catalog

    def render(self, template_name: str | None, variables: Mapping[str, Any] | None = None) -> str:
        """
        Render a catalog document as HTML.

        Args:
            template_name: Template name; unknown names use the default document
            variables: Template data; missing keys render as empty strings

        Returns:
            Rendered HTML with every substituted value escaped
        """
        document = self._catalog.resolve(template_name)
        return self.render_string(document.html, variables, escape_values=True)

    def render_string(
        self,
        source: str,
        variables: Mapping[str, Any] | None = None,
        escape_values: bool = False,
    ) -> str:
        """Render an arbitrary mini-language string (titles, push and in-app text)."""
        values = dict(variables or {})
        try:
            if LINE_ITEMS_FIELD in values or LINE_ITEMS_PLACEHOLDER not in values:
                values[LINE_ITEMS_PLACEHOLDER] = self._render_line_items(values.get(LINE_ITEMS_FIELD))
            text = self._resolve_conditionals(source, values)
            text = self._substitute(text, values, escape_values)
            return self._strip_markers(text)
        except Exception as e:
            logger.error("template_render_failed", error=str(e), error_type=type(e).__name__)
            return self._strip_markers(_first_branches(source))

    def _render_line_items(self, items: Any) -> Markup:
        """Render a list of ``{name, quantity, price}`` items into an HTML table."""
        if not items or not isinstance(items, (list, tuple)):
            return Markup("")
        rows = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            rows.append(
                Markup("<tr><td>{}</td><td>{}</td><td>{}</td></tr>").format(
                    _stringify(item.get("name")),
                    _stringify(item.get("quantity")),
                    _stringify(item.get("price")),
                )
            )
        if not rows:
            return Markup("")
        return (
            Markup('<table class="items-table"><thead><tr><th>Item</th><th>Qty</th>'
                   "<th>Price</th></tr></thead><tbody>")
            + Markup("").join(rows)
            + Markup("</tbody></table>")
        )

    def _resolve_conditionals(self, text: str, variables: Mapping[str, Any]) -> str:
        """Resolve ``{{#if}}`` blocks innermost-first until a fixed point."""

        def choose(match: re.Match[str]) -> str:
            if variables.get(match.group(1)):
                return match.group(2)
            return match.group(3) or ""

        # Each productive pass removes at least one opening marker.
        for _ in range(text.count(_OPEN_MARKER) + 1):
            resolved = _CONDITIONAL_PATTERN.sub(choose, text)
            if resolved == text:
                break
            text = resolved
        return text

    def _substitute(self, text: str, variables: Mapping[str, Any], escape_values: bool) -> str:
        def replace(match: re.Match[str]) -> str:
            value = variables.get(match.group(1))
            if isinstance(value, Markup):
                return str(value)
            rendered = _stringify(value)
            return str(escape(rendered)) if escape_values else rendered

        return _PLACEHOLDER_PATTERN.sub(replace, text)

    def _strip_markers(self, text: str) -> str:
        text = _LEFTOVER_TOKEN_PATTERN.sub("", text)
        while "{{" in text or "}}" in text:
            text = text.replace("{{", "").replace("}}", "")
        return text


_CONDITIONAL_MARKERS = re.compile(r"\{\{(?:#if\s+\w+\s*|else|/if)\}\}")


def _first_branches(text: str) -> str:
    """Best-effort rendering: keep the first branch of every block, innermost first."""
    for _ in range(text.count(_OPEN_MARKER) + 1):
        resolved = _CONDITIONAL_PATTERN.sub(lambda m: m.group(2), text)
        if resolved == text:
            break
        text = resolved
    return _CONDITIONAL_MARKERS.sub("", text)


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def html_to_text(document: str) -> str:
    """Derive a plain-text alternative from a rendered HTML document."""
    text = _HEAD_PATTERN.sub("", document)
    text = _BLOCK_BREAK_PATTERN.sub("\n", text)
    text = _TAG_PATTERN.sub("", text)
    text = html.unescape(text)
    lines = [_INLINE_SPACE_PATTERN.sub(" ", line).strip() for line in text.splitlines()]
    text = "\n".join(lines)
    return _BLANK_LINES_PATTERN.sub("\n\n", text).strip()
