"""Markdown renderer: turns a post body into an HTML fragment.

Rendering is Python-Markdown plus a fixed rule table. After Markdown has
built its element tree, every element is classified into an ElementKind by
tag and handed to that kind's rule, which adds style hooks and any
structural changes (table wrappers, link targets, image fallbacks).

Code is split by syntax alone: a backtick span becomes a CODE_SPAN ``<code>``;
a fenced or indented block is highlighted by the ``codehilite`` extension
inside a CODE_BLOCK wrapper. Languages are never guessed; no language (or an
unknown one) renders as plain text. Raw HTML in a body is shown as text.
"""

import html
import logging
import re
import xml.etree.ElementTree as etree
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from functools import lru_cache

import markdown
from markdown import util
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor
from pygments.formatters import HtmlFormatter

from blog_api.config import get_settings
from blog_api.models.post import Post, RenderedPost

logger = logging.getLogger(__name__)


class ElementKind(StrEnum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    EMPHASIS = "emphasis"
    STRONG = "strong"
    CODE_SPAN = "code_span"
    CODE_BLOCK = "code_block"
    LINK = "link"
    IMAGE = "image"
    LIST = "list"
    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"
    RULE = "rule"
    TABLE = "table"
    TABLE_HEAD = "table_head"
    TABLE_ROW = "table_row"
    TABLE_HEADER_CELL = "table_header_cell"
    TABLE_CELL = "table_cell"


TAG_KINDS: dict[str, ElementKind] = {
    **{f"h{level}": ElementKind.HEADING for level in range(1, 7)},
    "p": ElementKind.PARAGRAPH,
    "em": ElementKind.EMPHASIS,
    "strong": ElementKind.STRONG,
    "code": ElementKind.CODE_SPAN,
    "pre": ElementKind.CODE_BLOCK,
    "a": ElementKind.LINK,
    "img": ElementKind.IMAGE,
    "ul": ElementKind.LIST,
    "ol": ElementKind.LIST,
    "li": ElementKind.LIST_ITEM,
    "blockquote": ElementKind.BLOCKQUOTE,
    "hr": ElementKind.RULE,
    "table": ElementKind.TABLE,
    "thead": ElementKind.TABLE_HEAD,
    "tr": ElementKind.TABLE_ROW,
    "th": ElementKind.TABLE_HEADER_CELL,
    "td": ElementKind.TABLE_CELL,
}

DEFAULT_CLASSES: dict[ElementKind, str] = {
    ElementKind.HEADING: "post-heading",
    ElementKind.PARAGRAPH: "post-paragraph",
    ElementKind.EMPHASIS: "post-emphasis",
    ElementKind.STRONG: "post-strong",
    ElementKind.CODE_SPAN: "post-code-span",
    ElementKind.CODE_BLOCK: "post-code-block",
    ElementKind.LINK: "post-link",
    ElementKind.IMAGE: "post-image",
    ElementKind.LIST: "post-list",
    ElementKind.LIST_ITEM: "post-list-item",
    ElementKind.BLOCKQUOTE: "post-blockquote",
    ElementKind.RULE: "post-rule",
    ElementKind.TABLE: "post-table",
    ElementKind.TABLE_HEAD: "post-table-head",
    ElementKind.TABLE_ROW: "post-table-row",
    ElementKind.TABLE_HEADER_CELL: "post-table-header-cell",
    ElementKind.TABLE_CELL: "post-table-cell",
}

TABLE_WRAPPER_CLASS = "post-table-wrapper"
FALLBACK_CLASS = "post-fallback"
PLACEHOLDER_IMAGE = "/placeholder.svg"

_EXTERNAL_HREF_RE = re.compile(r"^https?://", re.IGNORECASE)

LinkPolicy = Callable[[str], dict[str, str]]


def is_external_link(href: str) -> bool:
    return bool(_EXTERNAL_HREF_RE.match(href))


def external_links_new_tab(href: str) -> dict[str, str]:
    """Open absolute http(s) links in a new browsing context."""
    if is_external_link(href):
        return {"target": "_blank", "rel": "noopener noreferrer"}
    return {}


def same_tab_links(href: str) -> dict[str, str]:
    return {}


@dataclass(frozen=True)
class RenderContext:
    classes: Mapping[ElementKind, str]
    link_policy: LinkPolicy


RenderRule = Callable[[etree.Element, etree.Element | None, RenderContext], None]


class CodeBlockFormatter(HtmlFormatter):
    """Pygments HTML formatter that tags ``<code>`` with the block's language.

    Codehilite hands formatter classes a ``lang_str`` such as
    ``language-python``; the stock formatter drops it.
    """

    def __init__(self, lang_str: str = "", **options) -> None:
        super().__init__(**options)
        self.lang_str = lang_str

    def _wrap_code(self, source: Iterator[tuple[int, str]]):
        yield 0, f'<code class="{html.escape(self.lang_str)}">'
        yield from source
        yield 0, "</code>"


def _add_class(el: etree.Element, css_class: str) -> None:
    if not css_class:
        return
    existing = el.get("class")
    el.set("class", f"{existing} {css_class}" if existing else css_class)


def _is_stash_placeholder(el: etree.Element) -> bool:
    return len(el) == 0 and bool(
        util.HTML_PLACEHOLDER_RE.fullmatch((el.text or "").strip())
    )


def _render_heading(
    el: etree.Element, parent: etree.Element | None, ctx: RenderContext
) -> None:
    base = ctx.classes[ElementKind.HEADING]
    _add_class(el, f"{base} {base}-{el.tag[1:]}")


def _render_paragraph(
    el: etree.Element, parent: etree.Element | None, ctx: RenderContext
) -> None:
    # Paragraphs that only carry stashed HTML are unwrapped later by Markdown
    if _is_stash_placeholder(el):
        return
    _add_class(el, ctx.classes[ElementKind.PARAGRAPH])


def _render_link(
    el: etree.Element, parent: etree.Element | None, ctx: RenderContext
) -> None:
    _add_class(el, ctx.classes[ElementKind.LINK])
    for name, value in ctx.link_policy(el.get("href", "")).items():
        el.set(name, value)


def _render_image(
    el: etree.Element, parent: etree.Element | None, ctx: RenderContext
) -> None:
    if not el.get("src"):
        el.set("src", PLACEHOLDER_IMAGE)
    el.set("alt", el.get("alt") or "")
    _add_class(el, ctx.classes[ElementKind.IMAGE])


def _render_table(
    el: etree.Element, parent: etree.Element | None, ctx: RenderContext
) -> None:
    _add_class(el, ctx.classes[ElementKind.TABLE])
    if parent is None:
        return
    wrapper = etree.Element("div", {"class": TABLE_WRAPPER_CLASS})
    position = list(parent).index(el)
    parent.remove(el)
    wrapper.tail, el.tail = el.tail, None
    wrapper.append(el)
    parent.insert(position, wrapper)


def _class_only(kind: ElementKind) -> RenderRule:
    def rule(
        el: etree.Element, parent: etree.Element | None, ctx: RenderContext
    ) -> None:
        _add_class(el, ctx.classes[kind])

    return rule


RENDER_RULES: dict[ElementKind, RenderRule] = {
    ElementKind.HEADING: _render_heading,
    ElementKind.PARAGRAPH: _render_paragraph,
    ElementKind.EMPHASIS: _class_only(ElementKind.EMPHASIS),
    ElementKind.STRONG: _class_only(ElementKind.STRONG),
    ElementKind.CODE_SPAN: _class_only(ElementKind.CODE_SPAN),
    # Highlighted blocks are stashed by codehilite with this class already
    # applied; only a <pre> it leaves in the tree reaches this rule.
    ElementKind.CODE_BLOCK: _class_only(ElementKind.CODE_BLOCK),
    ElementKind.LINK: _render_link,
    ElementKind.IMAGE: _render_image,
    ElementKind.LIST: _class_only(ElementKind.LIST),
    ElementKind.LIST_ITEM: _class_only(ElementKind.LIST_ITEM),
    ElementKind.BLOCKQUOTE: _class_only(ElementKind.BLOCKQUOTE),
    ElementKind.RULE: _class_only(ElementKind.RULE),
    ElementKind.TABLE: _render_table,
    ElementKind.TABLE_HEAD: _class_only(ElementKind.TABLE_HEAD),
    ElementKind.TABLE_ROW: _class_only(ElementKind.TABLE_ROW),
    ElementKind.TABLE_HEADER_CELL: _class_only(ElementKind.TABLE_HEADER_CELL),
    ElementKind.TABLE_CELL: _class_only(ElementKind.TABLE_CELL),
}

_missing_rules = set(ElementKind) - RENDER_RULES.keys()
if _missing_rules:
    raise RuntimeError(f"No render rule for element kinds: {sorted(_missing_rules)}")


def apply_rules(
    el: etree.Element, parent: etree.Element | None, ctx: RenderContext
) -> None:
    """Apply the rule for *el*, then recurse into its children (pre-order)."""
    kind = TAG_KINDS.get(el.tag) if isinstance(el.tag, str) else None
    if kind is not None:
        RENDER_RULES[kind](el, parent, ctx)
    for child in list(el):
        apply_rules(child, el, ctx)


class ElementRulesTreeprocessor(Treeprocessor):
    def __init__(self, md: markdown.Markdown, ctx: RenderContext) -> None:
        super().__init__(md)
        self.ctx = ctx

    def run(self, root: etree.Element) -> None:
        for child in list(root):
            apply_rules(child, root, self.ctx)


class PostMarkupExtension(Extension):
    """Applies the element rules and turns off raw HTML pass-through."""

    def __init__(
        self, classes: Mapping[ElementKind, str], link_policy: LinkPolicy
    ) -> None:
        super().__init__()
        self.classes = classes
        self.link_policy = link_policy

    def extendMarkdown(self, md: markdown.Markdown) -> None:
        # Raw HTML blocks and inline tags fall through to text and get escaped
        md.preprocessors.deregister("html_block")
        md.inlinePatterns.deregister("html")

        ctx = RenderContext(classes=self.classes, link_policy=self.link_policy)
        # After codehilite (30) and inline patterns (20), before prettify (10)
        md.treeprocessors.register(
            ElementRulesTreeprocessor(md, ctx), "post_element_rules", 15
        )


class MarkdownRenderer:
    """Pure body -> HTML transform with configurable style hooks and link policy.

    Each call builds a fresh Markdown instance, so one renderer can be shared
    across threads.
    """

    def __init__(
        self,
        classes: Mapping[ElementKind, str] | None = None,
        link_policy: LinkPolicy = external_links_new_tab,
    ) -> None:
        self.classes = {**DEFAULT_CLASSES, **(classes or {})}
        self.link_policy = link_policy

    def _markdown(self) -> markdown.Markdown:
        return markdown.Markdown(
            extensions=[
                "fenced_code",
                "codehilite",
                "tables",
                "sane_lists",
                PostMarkupExtension(self.classes, self.link_policy),
            ],
            extension_configs={
                "codehilite": {
                    "guess_lang": False,
                    "css_class": self.classes[ElementKind.CODE_BLOCK],
                    "pygments_formatter": CodeBlockFormatter,
                },
            },
            output_format="html",
        )

    def render(self, body: str) -> str:
        """Render *body* to HTML. Never raises for bad input.

        If the Markdown pipeline fails, the body is returned escaped inside a
        ``<pre>`` so the page still shows the text.
        """
        try:
            return self._markdown().convert(body)
        except Exception:
            logger.warning(
                "Markdown rendering failed, serving escaped text", exc_info=True
            )
            return f'<pre class="{FALLBACK_CLASS}">{html.escape(body)}</pre>'

    def render_post(self, post: Post) -> RenderedPost:
        return RenderedPost(slug=post.slug, html=self.render(post.body))


@lru_cache
def get_renderer() -> MarkdownRenderer:
    """Return the shared renderer configured from settings."""
    settings = get_settings()
    if settings.external_links_new_tab:
        policy = external_links_new_tab
    else:
        policy = same_tab_links
    return MarkdownRenderer(link_policy=policy)


def render_markdown(body: str) -> str:
    """Render a post body with the shared renderer."""
    return get_renderer().render(body)
