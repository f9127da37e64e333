# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Genro-ReportView - Composite report views over XML structure templates.

Views render their structure templates through XSLT stylesheets; composite
views splice the rendered fragments of their children into the
placeholders of their own output, producing a single report document.
"""

__version__ = "0.1.0"

from .composite import CompositeView
from .exceptions import (
    ChildNotFoundError,
    MissingChildViewError,
    RenderCycleError,
    ReportViewError,
    StructureError,
    StylesheetError,
)
from .structure import (
    find_placeholders,
    load_structure,
    load_stylesheet,
    splice_fragment,
    to_string,
)
from .view import BasicView, RenderState

__all__ = [
    # Views
    "BasicView",
    "CompositeView",
    "RenderState",
    # Structure helpers
    "load_structure",
    "load_stylesheet",
    "find_placeholders",
    "splice_fragment",
    "to_string",
    # Exceptions
    "ReportViewError",
    "ChildNotFoundError",
    "MissingChildViewError",
    "StructureError",
    "StylesheetError",
    "RenderCycleError",
]
