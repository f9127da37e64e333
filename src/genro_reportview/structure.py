# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Structure templates and rendered fragments.

A structure template is an XML document owned by a view. Composite views
mark the slots their children fill with placeholder elements::

    <fo:block>
        <child_view name="header"/>
        <child_view name="body"/>
    </fo:block>

This module holds the lxml-level operations the views are built on:
loading templates and stylesheets, finding placeholders, flagging the
unresolved ones and splicing rendered fragments in their place.

Example:
    >>> doc = load_structure('<root><child_view name="A"/></root>')
    >>> [p.get('name') for p in find_placeholders(doc, 'child_view')]
    ['A']
    >>> doc = splice_fragment(doc, find_placeholders(doc, 'child_view')[0],
    ...                       load_structure('<p>Hello</p>'))
    >>> to_string(doc)
    '<root><p>Hello</p></root>'
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Union

from lxml import etree

from .exceptions import StructureError, StylesheetError

StructureSource = Union[str, bytes, Path, etree._Element, etree._ElementTree]

# Placeholders are matched by local name, so they are still found when the
# rendered document declares a default namespace (XSL-FO output).
_PLACEHOLDER_QUERY = '//*[local-name() = $tag]'


def _parse(source: str | bytes | Path) -> etree._ElementTree:
    """Parse XML text, bytes or a file path into an ElementTree.

    Raises:
        etree.XMLSyntaxError: If the markup is malformed.
        OSError: If a path cannot be read.
        TypeError: If source is of an unsupported type.
    """
    parser = etree.XMLParser()
    if isinstance(source, Path):
        return etree.parse(str(source), parser)
    if isinstance(source, str):
        source = source.encode('utf-8')
    if isinstance(source, bytes):
        return etree.ElementTree(etree.fromstring(source, parser))
    raise TypeError(
        f"source must be str, bytes, Path, Element or ElementTree, "
        f"not {type(source).__name__}"
    )


def load_structure(source: StructureSource) -> etree._ElementTree:
    """Load a structure template.

    Args:
        source: The template. Can be:
            - str or bytes: XML markup
            - Path: an XML file
            - Element: used as document root (copied if it has a parent)
            - ElementTree: returned unchanged

    Returns:
        The template as an lxml ElementTree.

    Raises:
        StructureError: If the markup cannot be parsed or the file read.
        TypeError: If source is of an unsupported type.
    """
    if isinstance(source, etree._ElementTree):
        return source
    if isinstance(source, etree._Element):
        if source.getparent() is not None:
            source = copy.deepcopy(source)
        return etree.ElementTree(source)
    try:
        return _parse(source)
    except (etree.XMLSyntaxError, OSError) as exc:
        raise StructureError(f"Cannot parse structure template: {exc}") from exc


def load_stylesheet(source: StructureSource | etree.XSLT) -> etree.XSLT:
    """Compile an XSLT stylesheet.

    Args:
        source: A compiled XSLT (returned unchanged) or anything accepted
            by load_structure.

    Raises:
        StylesheetError: If the stylesheet cannot be parsed or compiled.
    """
    if isinstance(source, etree.XSLT):
        return source
    try:
        document = load_structure(source)
    except StructureError as exc:
        raise StylesheetError(f"Cannot parse stylesheet: {exc}") from exc
    try:
        return etree.XSLT(document)
    except etree.XSLTParseError as exc:
        raise StylesheetError(f"Cannot compile stylesheet: {exc}") from exc


def find_placeholders(
    document: etree._ElementTree | etree._Element | None, tag: str
) -> list[etree._Element]:
    """Return every placeholder element with the given tag, in document order.

    The XPath query is compiled on each call and never shared.

    Raises:
        StructureError: If there is no document or it cannot be queried.
    """
    if document is None:
        raise StructureError("No structure template to query")
    query = etree.XPath(_PLACEHOLDER_QUERY)
    try:
        return list(query(document, tag=tag))
    except etree.XPathError as exc:
        raise StructureError(f"Cannot query placeholders '{tag}': {exc}") from exc


def mark_unresolved(placeholder: etree._Element, attr: str) -> None:
    """Flag a placeholder whose child view is missing."""
    placeholder.set(attr, '1')


def clear_unresolved(placeholder: etree._Element, attr: str) -> None:
    """Drop a stale unresolved flag, if any."""
    if attr in placeholder.attrib:
        del placeholder.attrib[attr]


def fragment_nodes(fragment: etree._ElementTree) -> list[etree._Element]:
    """Return the top-level nodes of a fragment in document order.

    These are the root element plus any comments and processing
    instructions that sit beside it at document level.
    """
    root = fragment.getroot()
    if root is None:
        return []
    before = list(root.itersiblings(preceding=True))
    before.reverse()
    return before + [root] + list(root.itersiblings())


def splice_fragment(
    document: etree._ElementTree,
    placeholder: etree._Element,
    fragment: etree._ElementTree,
) -> etree._ElementTree:
    """Replace a placeholder with copies of a fragment's top-level nodes.

    The copies are inserted immediately before the placeholder, which is
    then removed. Text following the placeholder is kept. When the
    placeholder is the document root, a copy of the whole fragment,
    top-level comments and processing instructions included, becomes
    the new document.

    Args:
        document: The document holding the placeholder.
        placeholder: The element to replace.
        fragment: The rendered fragment to copy in.

    Returns:
        The resulting document (document itself unless the root was replaced).
    """
    parent = placeholder.getparent()
    if parent is None:
        return copy.deepcopy(fragment)

    tail = placeholder.tail
    last = None
    for node in fragment_nodes(fragment):
        clone = copy.deepcopy(node)
        clone.tail = None
        placeholder.addprevious(clone)
        last = clone

    if tail:
        previous = last if last is not None else placeholder.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or '') + tail
        else:
            parent.text = (parent.text or '') + tail
    parent.remove(placeholder)
    return document


def to_string(
    document: etree._ElementTree | etree._Element,
    pretty_print: bool = False,
    encoding: Any = 'unicode',
) -> str | bytes:
    """Serialize a document or element.

    Args:
        document: What to serialize.
        pretty_print: Indent the output.
        encoding: 'unicode' (default) returns str; any codec name returns
            bytes with an XML declaration.
    """
    if encoding == 'unicode':
        return etree.tostring(document, pretty_print=pretty_print, encoding='unicode')
    return etree.tostring(
        document, pretty_print=pretty_print, encoding=encoding, xml_declaration=True
    )
