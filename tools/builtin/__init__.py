"""
Built-in Tools

Review operations exposed by default:
- CodeReviewTool: General review with an optional code replacement
- AnalyzeCodeTool: Explain / optimize / debug / refactor / compare
- SuggestImprovementsTool: Goal driven improvements with a code replacement
- ValidateArchitectureTool: Architecture and design checklist
- ReviewHistoryTool: Session history
"""

from ..base import ToolRegistry
from .review_tools import (
    AnalyzeCodeTool,
    CodeReviewTool,
    ReviewHistoryTool,
    SuggestImprovementsTool,
    ValidateArchitectureTool,
)


def register_builtin_tools():
    """Register all built-in tools in the registry"""
    for tool in (
        CodeReviewTool(),
        AnalyzeCodeTool(),
        SuggestImprovementsTool(),
        ValidateArchitectureTool(),
        ReviewHistoryTool(),
    ):
        if ToolRegistry.get(tool.name) is None:
            ToolRegistry.register(tool)
