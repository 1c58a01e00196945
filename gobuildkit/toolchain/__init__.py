"""
Go toolchain invocation for gobuildkit.
"""

from gobuildkit.toolchain.invoker import BuildRequest, GoToolchain, ToolchainInvoker
from gobuildkit.toolchain.process import ProcessResult, run_process, terminate_process_tree

__all__ = [
    "BuildRequest",
    "GoToolchain",
    "ToolchainInvoker",
    "ProcessResult",
    "run_process",
    "terminate_process_tree",
]
