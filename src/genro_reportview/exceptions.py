# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""ReportView exceptions."""

from __future__ import annotations


class ReportViewError(Exception):
    """Base exception for ReportView errors."""

    pass


class ChildNotFoundError(ReportViewError, KeyError):
    """Raised when a child view is looked up by a name that is not registered."""

    def __init__(self, name: str, owner: str | None = None) -> None:
        self.name = name
        self.owner = owner
        where = f" in view '{owner}'" if owner else ''
        super().__init__(f"Child view '{name}' not found{where}")

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0])


class MissingChildViewError(ReportViewError):
    """Raised when a placeholder names an unregistered child and the
    composite was created with raise_on_missing=True."""

    pass


class StructureError(ReportViewError):
    """Raised when a structure template cannot be parsed or queried."""

    pass


class StylesheetError(ReportViewError):
    """Raised when an XSLT stylesheet cannot be compiled or applied."""

    pass


class RenderCycleError(ReportViewError):
    """Raised when the view tree loops back on itself.

    Rendering raises it when a view is reached again while its own render
    is running; navigation and walk() raise it on a cyclic parent or child
    chain.
    """

    pass
