from .tooling import ExecuteAnonymousResult, ToolingResource

__all__ = ["ExecuteAnonymousResult", "ToolingResource"]
