# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""CompositeView - a view made of named child views.

A CompositeView's structure template marks where each child goes with a
placeholder element carrying the child's name::

    <fo:flow flow-name="xsl-region-body">
        <child_view name="header"/>
        <child_view name="table"/>
    </fo:flow>

render() works depth first:

1. every placeholder in the structure template is looked up by name and
   the matching child is rendered; placeholders naming an unknown child
   are flagged with child_not_found="1" and left in the output;
2. the composite's own structure is rendered through its stylesheets;
3. each placeholder found in the rendered document is replaced by a copy
   of the top-level nodes of its child's rendered fragment. A placeholder
   first produced by a stylesheet has its child rendered at this point.

Children are rendered in the document order of the placeholders. A
child named by two placeholders is rendered twice and each slot gets its
own copy.

Example:
    >>> report = CompositeView('report', '<root><child_view name="A"/>'
    ...                                  '<child_view name="B"/></root>')
    >>> report.add_child('A', BasicView('A', '<p>Hello</p>'))
    BasicView('A', state=unrendered)
    >>> report.to_string()
    '<root><p>Hello</p><child_view name="B" child_not_found="1"/></root>'
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Sequence

from lxml import etree

from .exceptions import (
    ChildNotFoundError,
    MissingChildViewError,
    RenderCycleError,
    StructureError,
)
from .structure import (
    StructureSource,
    clear_unresolved,
    find_placeholders,
    mark_unresolved,
    splice_fragment,
)
from .view import BasicView, RenderState

logger = logging.getLogger(__name__)


class CompositeView(BasicView):
    """A view that renders its children into its own placeholders.

    Class attributes (overridable per subclass or per instance):
        child_view_tag: Local name of placeholder elements.
        not_found_attr: Attribute set on placeholders with no matching child.

    Example:
        >>> page = CompositeView('page', '<page><child_view name="body"/></page>')
        >>> body = page.add_child('body', BasicView('body', '<text>Hi</text>'))
        >>> page.get_child('body') is body
        True
        >>> page.to_string()
        '<page><text>Hi</text></page>'
    """

    child_view_tag: str = 'child_view'
    not_found_attr: str = 'child_not_found'

    def __init__(
        self,
        name: str,
        structure: StructureSource | None = None,
        stylesheets: Sequence[Any] | None = None,
        params: dict[str, str] | None = None,
        raise_on_missing: bool = False,
    ) -> None:
        """Initialize a CompositeView.

        Args:
            name: The view name.
            structure: The structure template holding the placeholders.
            stylesheets: XSLT stylesheets applied to the structure.
            params: XSLT parameters.
            raise_on_missing: If True, a placeholder naming an unregistered
                child raises MissingChildViewError. If False (default) the
                placeholder is flagged and rendering continues.
        """
        super().__init__(name, structure, stylesheets=stylesheets, params=params)
        self._children: dict[str, BasicView] = {}
        self.raise_on_missing = raise_on_missing

    # ==================== Special Methods ====================

    def __len__(self) -> int:
        """Return the number of registered children."""
        return len(self._children)

    def __iter__(self) -> Iterator[str]:
        """Iterate over child names in registration order."""
        return iter(self._children)

    def __contains__(self, name: str) -> bool:
        return name in self._children

    # ==================== Children ====================

    @property
    def children(self) -> Mapping[str, BasicView]:
        """Read-only view of the children mapping."""
        return MappingProxyType(self._children)

    def add_child(self, name: str, view: BasicView) -> BasicView:
        """Register a child view under name.

        A child already registered under the same name is replaced. It is
        detached only if this view still owns it and it is not registered
        here under another name.

        Args:
            name: The name placeholders use to reference the child.
            view: The child view.

        Returns:
            The child view, for chaining.
        """
        previous = self._children.get(name)
        self._children[name] = view
        if (
            previous is not None
            and previous is not view
            and previous.parent is self
            and not any(child is previous for child in self._children.values())
        ):
            previous.parent = None
        view.parent = self
        return view

    def get_child(self, name: str) -> BasicView:
        """Get a child view by name.

        Raises:
            ChildNotFoundError: If no child is registered under name.
        """
        try:
            return self._children[name]
        except KeyError:
            raise ChildNotFoundError(name, owner=self.name) from None

    def get(self, name: str, default: BasicView | None = None) -> BasicView | None:
        """Get a child view by name, or default if it is not registered."""
        return self._children.get(name, default)

    def remove_child(self, name: str) -> BasicView | None:
        """Remove and return the child registered under name.

        Returns:
            The removed child, or None if there was none.
        """
        view = self._children.pop(name, None)
        if view is not None and view.parent is self:
            view.parent = None
        return view

    def walk(self) -> Iterator[tuple[str, BasicView]]:
        """Walk the view tree depth first.

        Yields:
            Tuples of (path, view) for every descendant, where path is the
            dotted chain of child names below this view.

        Raises:
            RenderCycleError: If a composite is reached again below itself.

        Example:
            >>> for path, view in report.walk():
            ...     print(path, type(view).__name__)
        """
        def _walk_gen(
            composite: CompositeView, prefix: str, active: set[int]
        ) -> Iterator[tuple[str, BasicView]]:
            for name, view in composite._children.items():
                path = f"{prefix}.{name}" if prefix else name
                yield path, view
                if isinstance(view, CompositeView):
                    if id(view) in active:
                        raise RenderCycleError(
                            f"View tree contains a cycle at '{path}'"
                        )
                    active.add(id(view))
                    yield from _walk_gen(view, path, active)
                    active.discard(id(view))

        return _walk_gen(self, '', {id(self)})

    # ==================== Rendering ====================

    def _handle_missing(self, placeholder: etree._Element, name: str | None) -> None:
        """Apply the missing-child policy to a placeholder.

        Raises MissingChildViewError when raise_on_missing is set, otherwise
        logs a warning and flags the placeholder. A placeholder already
        flagged is not reported again.
        """
        if self.raise_on_missing:
            raise MissingChildViewError(
                f"View '{self.name}' has no child view named {name!r}"
            )
        if placeholder.get(self.not_found_attr) is None:
            logger.warning(
                "View '%s': placeholder <%s name=%r> has no child view",
                self.name, self.child_view_tag, name,
            )
        mark_unresolved(placeholder, self.not_found_attr)

    def _render_children(self) -> dict[str, etree._ElementTree]:
        """Render every child referenced by a placeholder in the structure.

        Placeholders with no matching child are flagged in the structure
        template so the flag survives the stylesheet step.
        """
        if self.structure is None:
            raise StructureError(f"View '{self.name}' has no structure template")
        fragments: dict[str, etree._ElementTree] = {}
        placeholders = find_placeholders(self.structure, self.child_view_tag)
        logger.debug(
            "View '%s': %d placeholder(s) for %d child view(s)",
            self.name, len(placeholders), len(self._children),
        )
        for placeholder in placeholders:
            name = placeholder.get('name')
            child = self._children.get(name) if name is not None else None
            if child is None:
                self._handle_missing(placeholder, name)
                continue
            clear_unresolved(placeholder, self.not_found_attr)
            fragments[name] = child.render()
        return fragments

    def _merge_children(
        self,
        document: etree._ElementTree,
        fragments: dict[str, etree._ElementTree],
    ) -> etree._ElementTree:
        """Replace the rendered document's placeholders with child fragments.

        A placeholder first produced by a stylesheet has its child rendered
        here; one naming an unregistered child stays flagged in place.
        """
        for placeholder in find_placeholders(document, self.child_view_tag):
            name = placeholder.get('name')
            fragment = fragments.get(name) if name is not None else None
            if fragment is None:
                child = self._children.get(name) if name is not None else None
                if child is None:
                    self._handle_missing(placeholder, name)
                    continue
                logger.debug(
                    "View '%s': rendering child '%s' for a stylesheet placeholder",
                    self.name, name,
                )
                fragment = fragments[name] = child.render()
            document = splice_fragment(document, placeholder, fragment)
        return document

    def render(self) -> etree._ElementTree:
        """Render the children, then this view, and merge them.

        Returns:
            The merged document, also stored in self.rendered.

        Raises:
            StructureError: If the structure template is missing or cannot
                be queried.
            StylesheetError: If a stylesheet of this view fails.
            MissingChildViewError: If raise_on_missing is set and a
                placeholder names an unregistered child.
            RenderCycleError: If this view is reached again while rendering.
            Any error raised by a child's render() propagates unchanged.
        """
        self._enter_render()
        try:
            fragments = self._render_children()
            document = self._merge_children(self._transform(), fragments)
        except BaseException:
            self.state = RenderState.UNRENDERED
            raise
        logger.debug("Rendered composite view '%s'", self.name)
        return self._finish_render(document)
