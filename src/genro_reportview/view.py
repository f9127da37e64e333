# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""BasicView - a leaf of the report view tree.

A BasicView owns a structure template and renders it through an ordered
chain of XSLT stylesheets. The rendered document is cached on the view
and consumed either by the composite view that owns it, which splices it
into its own output, or by the report pipeline when the view is the root.

Example:
    >>> view = BasicView('title', '<title>Quarterly report</title>')
    >>> view.to_string()
    '<title>Quarterly report</title>'

    With a stylesheet::

        view = BasicView(
            'summary',
            Path('summary.xml'),
            stylesheets=[Path('summary.xsl')],
            params={'year': '2025'},
        )
        fo = view.render()
"""

from __future__ import annotations

import copy
import enum
import logging
import weakref
from typing import TYPE_CHECKING, Any, Sequence

from lxml import etree

from .exceptions import RenderCycleError, StructureError, StylesheetError
from .structure import StructureSource, load_stylesheet, load_structure, to_string

if TYPE_CHECKING:
    from .composite import CompositeView

logger = logging.getLogger(__name__)


class RenderState(enum.Enum):
    """Render lifecycle of a view."""

    UNRENDERED = 'unrendered'
    RENDERING = 'rendering'
    RENDERED = 'rendered'


class BasicView:
    """A named view with a structure template and XSLT stylesheets.

    Attributes:
        name: The view name, also the key under which a composite owns it.
        structure: The structure template (lxml ElementTree), or None.
        stylesheets: Compiled XSLT stylesheets, applied in order.
        params: XSLT string parameters passed to every stylesheet.
        rendered: The last rendered document, or None before render().
        state: The current RenderState.
    """

    def __init__(
        self,
        name: str,
        structure: StructureSource | None = None,
        stylesheets: Sequence[Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> None:
        """Initialize a BasicView.

        Args:
            name: The view name.
            structure: The structure template, anything accepted by
                load_structure. May be set later.
            stylesheets: XSLT stylesheets, anything accepted by load_stylesheet.
            params: XSLT parameters. Values are passed as string literals.

        Raises:
            StructureError: If the structure cannot be parsed.
            StylesheetError: If a stylesheet cannot be compiled.
        """
        self.name = name
        self.structure = load_structure(structure) if structure is not None else None
        self.stylesheets: list[etree.XSLT] = [
            load_stylesheet(sheet) for sheet in (stylesheets or ())
        ]
        self.params = dict(params or {})
        self.rendered: etree._ElementTree | None = None
        self.state = RenderState.UNRENDERED
        self._parent_ref: weakref.ref[CompositeView] | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, state={self.state.value})"

    # ==================== Navigation ====================

    @property
    def parent(self) -> CompositeView | None:
        """The composite view owning this view, if it is still alive."""
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @parent.setter
    def parent(self, value: CompositeView | None) -> None:
        self._parent_ref = weakref.ref(value) if value is not None else None

    def _lineage(self) -> list[BasicView]:
        """Return this view followed by its ancestors up to the root.

        Raises:
            RenderCycleError: If the parent chain loops back on itself.
        """
        lineage = [self]
        seen = {id(self)}
        parent = self.parent
        while parent is not None:
            if id(parent) in seen:
                raise RenderCycleError(
                    f"View '{self.name}' has a cycle in its parent chain at '{parent.name}'"
                )
            seen.add(id(parent))
            lineage.append(parent)
            parent = parent.parent
        return lineage

    @property
    def root(self) -> BasicView:
        """Get the root view of this hierarchy."""
        return self._lineage()[-1]

    @property
    def depth(self) -> int:
        """Get the depth of this view in the hierarchy (root=0)."""
        return len(self._lineage()) - 1

    @property
    def path(self) -> str:
        """Dotted path of view names from the root, root excluded."""
        names = [view.name for view in self._lineage()[:-1]]
        names.reverse()
        return '.'.join(names)

    # ==================== Rendering ====================

    def set_structure(self, structure: StructureSource) -> None:
        """Replace the structure template and reset the render state."""
        self.structure = load_structure(structure)
        self.rendered = None
        self.state = RenderState.UNRENDERED

    def add_stylesheet(self, stylesheet: Any) -> None:
        """Append a stylesheet to the chain."""
        self.stylesheets.append(load_stylesheet(stylesheet))

    def _enter_render(self) -> None:
        if self.state is RenderState.RENDERING:
            raise RenderCycleError(f"View '{self.name}' is already rendering")
        self.state = RenderState.RENDERING

    def _finish_render(self, document: etree._ElementTree) -> etree._ElementTree:
        self.rendered = document
        self.state = RenderState.RENDERED
        return document

    def _transform(self) -> etree._ElementTree:
        """Run the structure through the stylesheet chain.

        Returns a new document; the structure itself is never modified.
        """
        if self.structure is None:
            raise StructureError(f"View '{self.name}' has no structure template")

        document = copy.deepcopy(self.structure)
        if not self.stylesheets:
            return document

        params = {key: etree.XSLT.strparam(str(value)) for key, value in self.params.items()}
        for index, stylesheet in enumerate(self.stylesheets):
            try:
                document = stylesheet(document, **params)
            except etree.XSLTApplyError as exc:
                raise StylesheetError(
                    f"Stylesheet #{index} failed on view '{self.name}': "
                    f"{stylesheet.error_log}"
                ) from exc
            if document.getroot() is None:
                raise StylesheetError(
                    f"Stylesheet #{index} produced no document for view '{self.name}'"
                )
        return document

    def render(self) -> etree._ElementTree:
        """Render the structure through the stylesheets.

        Returns:
            The rendered document, also stored in self.rendered.

        Raises:
            StructureError: If the view has no structure template.
            StylesheetError: If a stylesheet fails.
            RenderCycleError: If called while this view is rendering.
        """
        self._enter_render()
        try:
            document = self._transform()
        except BaseException:
            self.state = RenderState.UNRENDERED
            raise
        logger.debug("Rendered view '%s'", self.name)
        return self._finish_render(document)

    def to_string(self, pretty_print: bool = False, encoding: Any = 'unicode') -> str | bytes:
        """Serialize the rendered document, rendering it first if needed."""
        document = self.rendered if self.rendered is not None else self.render()
        return to_string(document, pretty_print=pretty_print, encoding=encoding)
