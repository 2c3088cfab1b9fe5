from typing import Any, Dict

from ..base import FileReviewTool, OperationKind, PromptContext, Tool, ToolParameter


SUGGESTION_FORMAT = """--- OLD_CODE ---
{old_hint}
--- END_OLD_CODE ---

--- NEW_CODE ---
{new_hint}
--- END_NEW_CODE ---"""


def _file_path_param(description: str) -> ToolParameter:
    return ToolParameter(
        name="file_path",
        type="string",
        description=description,
        required=True
    )


def _language_param() -> ToolParameter:
    return ToolParameter(
        name="language",
        type="string",
        description="Programming language (auto-detected if not specified)",
        required=False,
        max_length=50
    )


def _code_block(ctx: PromptContext) -> str:
    return f"```{ctx.fence}\n{ctx.source}\n```"


class CodeReviewTool(FileReviewTool):
    def __init__(self):
        super().__init__()
        self.name = "gemini_code_review"
        self.kind = OperationKind.REVIEW
        self.label = "code_review"
        self.title = "Gemini Code Review"
        self.icon = "🧭"
        self.description = "Use Gemini CLI to review code for correctness, best practices, and improvements"
        self.modifier_param = "focus_areas"
        self.accepts_context = True
        self.parses_suggestion = True
        self.parameters = [
            _file_path_param("Path to the source code file to review"),
            ToolParameter(
                name="context",
                type="string",
                description="Additional context (max 1000 chars)",
                required=False,
                max_length=1000
            ),
            ToolParameter(
                name="focus_areas",
                type="string",
                description="Aspect the review should concentrate on",
                required=False,
                default="general",
                enum=["syntax", "logic", "performance", "best_practices", "security", "testing", "general"]
            ),
            _language_param()
        ]

    def extra_tags(self, modifier: str, context: str) -> Dict[str, Any]:
        return {"context": context, "focus_areas": modifier}

    def build_prompt(self, ctx: PromptContext) -> str:
        suggestion = SUGGESTION_FORMAT.format(
            old_hint="// The full, original code block to be replaced.",
            new_hint="// The full, new, improved code block."
        )
        return f"""Perform a comprehensive code review:

**File**: {ctx.display_path}
**Language**: {ctx.language}
**Context**: {ctx.context}
**Focus Areas**: {ctx.modifier}

**Code to Review**:
{_code_block(ctx)}

**Instructions**:
Give a text-based review. If one specific, critical issue can be fixed by a direct code replacement, you MAY provide ONE such suggestion using exactly this format:

{suggestion}

**Review Guidelines**:
1. **Issues Found**: List problems with severity levels (Critical, High, Medium, Low).
2. **Suggestions**: Give specific, actionable improvements and the rationale for any replacement above.
3. **Rating**: Overall code quality score (1-10).
4. **Priority Actions**: The top 3 things to fix first."""


_ANALYSIS_LEADS = {
    "explain": "Explain what this {language} code does, how it works, and its purpose:",
    "optimize": "Analyze this {language} code for optimization opportunities:",
    "debug": "Help debug this {language} code by identifying potential issues:",
    "refactor": "Suggest refactoring improvements for this {language} code:",
    "compare": "Analyze this {language} code and suggest alternative approaches:",
}


class AnalyzeCodeTool(FileReviewTool):
    def __init__(self):
        super().__init__()
        self.name = "gemini_analyze_code"
        self.kind = OperationKind.ANALYZE
        self.label = "code_analysis"
        self.title = "Gemini Code Analysis"
        self.icon = "🔍"
        self.description = "Use Gemini CLI to analyze and explain code functionality"
        self.modifier_param = "analysis_type"
        self.parameters = [
            _file_path_param("Path to the source code file to analyze"),
            ToolParameter(
                name="analysis_type",
                type="string",
                description="Kind of analysis to perform",
                required=False,
                default="explain",
                enum=list(_ANALYSIS_LEADS.keys())
            ),
            _language_param()
        ]

    def extra_tags(self, modifier: str, context: str) -> Dict[str, Any]:
        return {"analysis_type": modifier}

    def build_prompt(self, ctx: PromptContext) -> str:
        lead = _ANALYSIS_LEADS.get(ctx.modifier, _ANALYSIS_LEADS["explain"]).format(language=ctx.language)
        return f"""{lead}

**File**: {ctx.display_path}
**Language**: {ctx.language}

**Code**:
{_code_block(ctx)}

Provide a detailed analysis focusing on the {ctx.modifier} aspect."""


class SuggestImprovementsTool(FileReviewTool):
    def __init__(self):
        super().__init__()
        self.name = "gemini_suggest_improvements"
        self.kind = OperationKind.SUGGEST
        self.label = "suggest_improvements"
        self.title = "Gemini Improvement Suggestions"
        self.icon = "💡"
        self.description = "Use Gemini CLI to suggest specific improvements for code"
        self.modifier_param = "improvement_goals"
        self.parses_suggestion = True
        self.parameters = [
            _file_path_param("Path to the source code file"),
            ToolParameter(
                name="improvement_goals",
                type="string",
                description="What the improvements should optimize for",
                required=False,
                default="general",
                enum=["performance", "readability", "maintainability", "scalability", "security", "general"]
            ),
            _language_param()
        ]

    def extra_tags(self, modifier: str, context: str) -> Dict[str, Any]:
        return {"improvement_goals": modifier}

    def build_prompt(self, ctx: PromptContext) -> str:
        suggestion = SUGGESTION_FORMAT.format(
            old_hint="// The full, original code block to be replaced, including indentation and newlines.",
            new_hint="// The full, new, improved code block, including indentation and newlines."
        )
        return f"""Suggest specific improvements for this {ctx.language} code:

**File**: {ctx.display_path}
**Language**: {ctx.language}
**Improvement Goals**: {ctx.modifier}

**Current Code**:
{_code_block(ctx)}

**Instructions**:
If you find a section of code to improve, give the complete original block and the complete replacement in exactly this format, with nothing else inside the blocks:

{suggestion}

**Rationale**:
After the code blocks, explain why the improvement is needed and what it does. Focus on: {ctx.modifier}."""


class ValidateArchitectureTool(FileReviewTool):
    def __init__(self):
        super().__init__()
        self.name = "gemini_validate_architecture"
        self.kind = OperationKind.VALIDATE_ARCHITECTURE
        self.label = "validate_architecture"
        self.title = "Gemini Architecture Validation"
        self.icon = "🏗️"
        self.description = "Use Gemini CLI to validate code architecture and design patterns"
        self.modifier_param = "validation_focus"
        self.parameters = [
            _file_path_param("Path to the source code file"),
            ToolParameter(
                name="validation_focus",
                type="string",
                description="Architectural concern to emphasize",
                required=False,
                default="architecture",
                enum=["architecture", "design_patterns", "scalability", "testability", "maintainability"]
            ),
            _language_param()
        ]

    def extra_tags(self, modifier: str, context: str) -> Dict[str, Any]:
        return {"validation_focus": modifier}

    def build_prompt(self, ctx: PromptContext) -> str:
        return f"""Validate this {ctx.language} code architecture and design:

**File**: {ctx.display_path}
**Language**: {ctx.language}
**Validation Focus**: {ctx.modifier}

**Code**:
{_code_block(ctx)}

**Validation Checklist**:
1. **Architecture**: Is the overall structure sound and scalable?
2. **Design Patterns**: Are appropriate patterns used correctly?
3. **Separation of Concerns**: Are responsibilities properly separated?
4. **SOLID Principles**: Does the code follow SOLID principles?
5. **Modularity**: Is the code properly modularized and reusable?
6. **Error Handling**: Is error handling comprehensive and appropriate?
7. **Documentation**: Is the code well-documented and self-explanatory?
8. **Testability**: How testable is this code?

Focus particularly on: {ctx.modifier}

Provide a comprehensive architectural assessment with recommendations."""


class ReviewHistoryTool(Tool):
    def __init__(self):
        super().__init__()
        self.name = "get_review_history"
        self.kind = OperationKind.HISTORY
        self.description = "Get the history of operations performed in this session"
        self.parameters = []
