"""
Host build system directives for gobuildkit.
"""

from gobuildkit.emit.cargo import CargoDirectiveWriter, format_directive
from gobuildkit.emit.directives import Directive, DirectiveKind, OutputEmitter

__all__ = [
    "CargoDirectiveWriter",
    "format_directive",
    "Directive",
    "DirectiveKind",
    "OutputEmitter",
]
