"""
Review pipeline

Runs one operation per call:
Validating -> Reading -> Prompting -> Invoking -> Parsing -> Recording -> Responding.
The first failure ends the run; nothing is retried. Every failure reaches
the caller as an error-flagged ToolResponse.
"""

import asyncio
import sys
import traceback
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from models import ToolResponse
from session_log import SessionLog
from tools.base import FileReviewTool, OperationKind, PromptContext, Tool, ToolRegistry
from tools.builtin import register_builtin_tools
from tools.cli_runner import CliAvailability, CliRunner, SubprocessOutcome, build_cli_env
from tools.config import ReviewSettings
from tools.errors import ErrorCategory, OperationError, ReviewError
from tools.file_guard import (
    ValidatedPath,
    detect_language,
    read_source,
    sanitize_input,
    validate_file_access,
    validate_file_path,
)
from tools.suggestion import ActionableSuggestion, extract_suggestion, render_suggestion


class PipelineStage(str, Enum):
    VALIDATING = "validating"
    READING = "reading"
    PROMPTING = "prompting"
    INVOKING = "invoking"
    PARSING = "parsing"
    RECORDING = "recording"
    RESPONDING = "responding"


def _log(message: str) -> None:
    print(f"[Review Pipeline] {message}", file=sys.stderr)


class ReviewPipeline:
    def __init__(
        self,
        settings: ReviewSettings,
        session: SessionLog,
        runner: Optional[CliRunner] = None,
        availability: Optional[CliAvailability] = None,
    ) -> None:
        self.settings = settings
        self.session = session
        self.runner = runner or CliRunner()
        self._env = build_cli_env(settings.extra_env)
        self.availability = availability or CliAvailability(
            self.runner,
            settings.executable,
            timeout_sec=settings.probe_timeout_sec,
            env=self._env,
        )
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_requests)
        register_builtin_tools()
        self._handlers: Dict[OperationKind, Callable[[Tool, Dict[str, Any]], Awaitable[ToolResponse]]] = {
            OperationKind.REVIEW: self._run_file_operation,
            OperationKind.ANALYZE: self._run_file_operation,
            OperationKind.SUGGEST: self._run_file_operation,
            OperationKind.VALIDATE_ARCHITECTURE: self._run_file_operation,
            OperationKind.HISTORY: self._show_history,
        }

    def list_tools(self):
        return [tool.to_dict() for tool in ToolRegistry.get_all()]

    async def handle(self, operation_name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResponse:
        """
        Entry point for the transport.

        Args:
            operation_name: Published tool name or operation kind
            arguments: Deserialized tool arguments

        Returns:
            ToolResponse; is_error is set instead of raising
        """
        try:
            if arguments is None:
                arguments = {}
            if not isinstance(arguments, dict):
                raise ReviewError("Tool arguments must be an object", ErrorCategory.INVALID_INPUT)
            tool = ToolRegistry.resolve(operation_name)
            return await self._handlers[tool.kind](tool, arguments)
        except ReviewError as exc:
            self._report_error(operation_name, arguments, exc)
            return ToolResponse.text(
                f"❌ **Error in {operation_name}**: {exc.message}\n\nPlease check your input parameters and try again.",
                is_error=True,
            )
        except Exception as exc:
            self._report_error(operation_name, arguments, exc)
            return ToolResponse.text(
                f"❌ **Error in {operation_name}**: Internal error: {exc}\n\nPlease check your input parameters and try again.",
                is_error=True,
            )

    async def _show_history(self, tool: Tool, arguments: Dict[str, Any]) -> ToolResponse:
        return ToolResponse.text(self.session.render())

    async def _run_file_operation(self, tool: FileReviewTool, arguments: Dict[str, Any]) -> ToolResponse:
        settings = self.settings
        stage = PipelineStage.VALIDATING
        raw_path = arguments.get("file_path")
        raw_language = arguments.get("language")
        raw_context = arguments.get("context")
        raw_modifier = arguments.get(tool.modifier_param) if tool.modifier_param else None
        validated: Optional[ValidatedPath] = None

        try:
            await self.availability.validate()

            validated = validate_file_path(raw_path, settings.root_dir, settings.allowed_extensions)
            await asyncio.to_thread(validate_file_access, validated.path, settings.max_file_size)

            modifier = tool.resolve_modifier(raw_modifier)
            context = ""
            if tool.accepts_context:
                context = sanitize_input(raw_context or "General code review", settings.max_context_chars)
            language = detect_language(
                validated.path,
                raw_language if isinstance(raw_language, str) else None,
                settings.max_language_chars,
            )

            stage = PipelineStage.READING
            source = await asyncio.to_thread(read_source, validated.path)

            stage = PipelineStage.PROMPTING
            prompt = sanitize_input(
                tool.build_prompt(PromptContext(
                    display_path=validated.display_path,
                    language=language,
                    source=source,
                    modifier=modifier,
                    context=context,
                )),
                settings.max_prompt_chars,
            )
            if not prompt:
                raise ReviewError("Empty or invalid prompt after sanitization", ErrorCategory.INVALID_INPUT)

            stage = PipelineStage.INVOKING
            _log(f"Executing {tool.title} ({modifier}) for: {validated.display_path}")
            async with self._semaphore:
                outcome = await self.runner.run(
                    settings.executable,
                    ["-p", prompt],
                    cwd=settings.root_dir,
                    env=self._env,
                    timeout_sec=settings.timeout_for(tool.label),
                    max_output_bytes=settings.max_output_bytes,
                )
            outcome.raise_for_failure()

            stage = PipelineStage.PARSING
            suggestion = extract_suggestion(outcome.stdout) if tool.parses_suggestion else None

            stage = PipelineStage.RECORDING
            tags: Dict[str, Any] = {"language": language}
            tags.update(tool.extra_tags(modifier, context))
            if tool.parses_suggestion:
                tags["actionable"] = suggestion is not None
            self.session.record(tool.label, validated.path, True, tags=tags)

            stage = PipelineStage.RESPONDING
            _log(f"{tool.label} finished for {validated.display_path} actionable={suggestion is not None}")
            return ToolResponse.text(self._render_success(tool, validated, language, outcome, suggestion))
        except ReviewError as exc:
            exc.details.setdefault("stage", stage.value)
            self._record_failure(tool, validated, raw_path, raw_language, raw_modifier, raw_context, exc)
            raise OperationError(tool.label, raw_path if isinstance(raw_path, str) else None, exc) from exc
        except Exception as exc:
            failure = ReviewError(
                f"Internal error: {exc}",
                ErrorCategory.INTERNAL,
                {"stage": stage.value, "exception": type(exc).__name__},
            )
            failure.__cause__ = exc
            self._record_failure(tool, validated, raw_path, raw_language, raw_modifier, raw_context, failure)
            raise OperationError(tool.label, raw_path if isinstance(raw_path, str) else None, failure) from failure

    def _record_failure(self, tool, validated, raw_path, raw_language, raw_modifier, raw_context, exc) -> None:
        modifier = str(raw_modifier) if raw_modifier else tool.default_modifier()
        tags: Dict[str, Any] = {"language": raw_language if isinstance(raw_language, str) and raw_language else "unknown"}
        tags.update(tool.extra_tags(modifier, raw_context if isinstance(raw_context, str) and raw_context else "none"))
        if isinstance(exc, ReviewError):
            tags["category"] = exc.category.value
        file_path = validated.path if validated else (raw_path if isinstance(raw_path, str) else None)
        self.session.record(tool.label, file_path, False, error=str(exc), tags=tags)

    def _render_success(
        self,
        tool: FileReviewTool,
        validated: ValidatedPath,
        language: str,
        outcome: SubprocessOutcome,
        suggestion: Optional[ActionableSuggestion],
    ) -> str:
        header = f"{tool.icon} **{tool.title} - {validated.display_path} ({language})**"
        body = suggestion.explanation if suggestion else outcome.stdout
        text = f"{header}\n\n{body}"
        if outcome.stderr:
            text += f"\n\n⚠️ **Warnings**: {outcome.stderr}"
        if suggestion:
            text += "\n\n" + render_suggestion(suggestion, language)
        return text

    def _report_error(self, operation_name: str, arguments: Any, exc: Exception) -> None:
        file_path = arguments.get("file_path") if isinstance(arguments, dict) else None
        root_cause: BaseException = exc
        while root_cause.__cause__ is not None:
            root_cause = root_cause.__cause__

        if isinstance(exc, ReviewError):
            print(
                f"[Tool Error] {operation_name}: {exc.message} | "
                f"operation={exc.details.get('operation', operation_name)} "
                f"file_path={exc.details.get('file_path', file_path)} "
                f"category={exc.category.value} stage={exc.details.get('stage')} "
                f"cause={root_cause if root_cause is not exc else None}",
                file=sys.stderr,
            )
            if isinstance(root_cause, ReviewError):
                return
        else:
            print(f"[Tool Error] {operation_name}: unexpected {type(exc).__name__}: {exc} | file_path={file_path}", file=sys.stderr)
        print("".join(traceback.format_exception(type(root_cause), root_cause, root_cause.__traceback__)), file=sys.stderr)
