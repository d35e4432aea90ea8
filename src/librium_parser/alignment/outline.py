"""Hierarchical outline to an ordered, parent-linked list of sections."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

from librium_parser.parsers.models import SpineItem, TocItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Section:
    """A flattened outline entry.

    ``order_index`` is the identity every other component refers to.
    ``target_ref`` is only used for anchor resolution.
    """

    title: str
    order_index: int
    depth: int
    parent_order_index: int | None = None
    target_ref: str = ""
    href: str = ""
    anchor: str = ""


def split_href_anchor(ref: str) -> tuple[str, str]:
    """Split ``path#fragment`` at the first ``#``."""
    href, _, anchor = ref.partition("#")
    return href, anchor


def flatten_outline(toc: Sequence[TocItem], spine: Sequence[SpineItem]) -> list[Section]:
    sections: list[Section] = []
    if toc:
        _flatten(toc, sections, depth=0, parent_order_index=None)

    if not sections:
        logger.debug("Outline empty, synthesizing %d sections from spine", len(spine))
        for i, item in enumerate(spine):
            sections.append(
                Section(
                    title=item.href or f"Section {i + 1}",
                    order_index=i,
                    depth=0,
                    target_ref=item.href,
                )
            )

    # Renumber densely; parents were assigned from the same counter
    flattened = []
    for position, section in enumerate(sections):
        href, anchor = split_href_anchor(section.target_ref)
        flattened.append(
            replace(
                section,
                order_index=position,
                title=section.title or f"Section {position + 1}",
                href=href,
                anchor=anchor,
            )
        )
    return flattened


def _flatten(
    items: Sequence[TocItem],
    out: list[Section],
    *,
    depth: int,
    parent_order_index: int | None,
) -> None:
    for item in items:
        target_ref = item.href
        if not target_ref and item.target is not None:
            target_ref = item.target.href

        order_index = len(out)
        out.append(
            Section(
                title=item.label,
                order_index=order_index,
                depth=depth,
                parent_order_index=parent_order_index,
                target_ref=target_ref,
            )
        )
        if item.children:
            _flatten(
                item.children, out, depth=depth + 1, parent_order_index=order_index
            )
