"""
Smart Scaffold
==============
Single-pass AI generation for one plugin component.

Each request walks a small state machine::

    INIT -> PROMPTED -> RECEIVED -> PARSED -> VALIDATED -> WRITTEN
      \\________\\__________\\_________\\___________\\____> FALLBACK

FALLBACK is a signal to the caller to run the deterministic template
generator instead; it is not an error.  Every failure along the way is
recorded in the session log in full (prompt, raw response, every issue)
while the console only gets a short, bounded summary.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from idempiere_codegen.ai_client import AIClient, get_ai_client
from idempiere_codegen.classpath import ClasspathResolver
from idempiere_codegen.config import CodegenConfig
from idempiere_codegen.guardrails import GuardrailValidator
from idempiere_codegen.models import GeneratedCode, ValidationIssue
from idempiere_codegen.observability import SessionLogger, configure_logging
from idempiere_codegen.project_analyzer import ProjectAnalyzer
from idempiere_codegen.prompt_builder import build_prompt, user_instructions
from idempiere_codegen.response_parser import ParseResult, parse_response
from idempiere_codegen.skills import SkillManager

logger = logging.getLogger("idempiere_codegen.generator")


class GenerationState(str, Enum):
    INIT = "INIT"
    PROMPTED = "PROMPTED"
    RECEIVED = "RECEIVED"
    PARSED = "PARSED"
    VALIDATED = "VALIDATED"
    WRITTEN = "WRITTEN"
    FALLBACK = "FALLBACK"


@dataclass
class GenerationRequest:
    """One component to generate.

    Attributes:
        component_type: e.g. ``"callout"`` or ``"process"``.
        name: Class/component name requested by the user.
        plugin_dir: Root directory of the target plugin.
        plugin_id: Bundle-SymbolicName, also the expected base package.
        extra: Extra parameters; ``"prompt"`` carries user instructions.
    """

    component_type: str
    name: str
    plugin_dir: Path
    plugin_id: str
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GenerationOutcome:
    """Terminal result of :meth:`SmartScaffold.run`."""

    state: GenerationState
    code: Optional[GeneratedCode] = None
    issues: List[ValidationIssue] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is GenerationState.WRITTEN


class SmartScaffold:
    """Orchestrates skill loading, prompting, parsing, validation and write.

    Args:
        client: AI client, or None when no backend is configured.
        skills: ``SkillManager`` providing SKILL.md text.
        analyzer: ``ProjectAnalyzer`` for prompt context.
        validator: ``GuardrailValidator`` run before anything is written.
        session_logger: ``SessionLogger`` receiving full diagnostics.
        config: ``CodegenConfig`` (uses the global config if None).
        parser: Callable turning raw text into a ``ParseResult``.
        out: Stream for progress messages.
        err: Stream for warnings and failures.
    """

    def __init__(
        self,
        client: Optional[AIClient] = None,
        skills: Optional[SkillManager] = None,
        analyzer: Optional[ProjectAnalyzer] = None,
        validator: Optional[GuardrailValidator] = None,
        session_logger: Optional[SessionLogger] = None,
        config: Optional[CodegenConfig] = None,
        parser: Callable[[Optional[str]], ParseResult] = parse_response,
        out=None,
        err=None,
    ):
        if config is None:
            from idempiere_codegen.config import get_config
            config = get_config()
        self.config = config
        self.client = client
        self.skills = skills or SkillManager(config.skills)
        self.analyzer = analyzer or ProjectAnalyzer()
        self.validator = validator or GuardrailValidator(
            resolver=ClasspathResolver(config.classpath), config=config.guardrails,
        )
        self.parser = parser
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self.session_logger = session_logger or SessionLogger(config.logging.log_dir, out=self.out)

    @classmethod
    def from_config(cls, config: Optional[CodegenConfig] = None, **kwargs) -> "SmartScaffold":
        """Build a scaffold whose AI client comes from configuration.

        Also attaches the package file log configured under ``logging``.
        """
        if config is None:
            from idempiere_codegen.config import get_config
            config = get_config()
        configure_logging(config)
        return cls(client=get_ai_client(config), config=config, **kwargs)

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    def generate(
        self,
        component_type: str,
        name: str,
        plugin_dir,
        plugin_id: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Optional[GeneratedCode]:
        """Generate and write one component.

        Returns:
            The written file set, or None to signal template fallback.
        """
        outcome = self.run(GenerationRequest(
            component_type=component_type,
            name=name,
            plugin_dir=Path(plugin_dir),
            plugin_id=plugin_id,
            extra=dict(extra or {}),
        ))
        return outcome.code if outcome.succeeded else None

    def run(self, request: GenerationRequest) -> GenerationOutcome:
        """Walk the state machine for ``request``.  Never raises.

        Opens a session log once AI generation is attempted and none is
        active; it stays open for later runs and is closed by the caller
        with ``end_session``.
        """
        try:
            return self._run(request)
        except Exception as e:
            logger.exception("AI generation for %s %s aborted", request.component_type, request.name)
            self.session_logger.log_error(f"AI generation aborted: {type(e).__name__}: {e}")
            return self._fallback(f"unexpected error: {e}")

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    def _ensure_session(self, request: GenerationRequest) -> None:
        if self.session_logger.active:
            return
        if self.session_logger.start_session(f"generate {request.component_type} {request.name}"):
            self.session_logger.clean_old_logs(self.config.logging.keep_sessions)

    def _run(self, request: GenerationRequest) -> GenerationOutcome:
        if self.client is None:
            return self._fallback("no AI backend configured")

        skill = self.skills.load_skill(request.component_type)
        if skill is None and user_instructions(request.extra) is None:
            logger.debug("No skill or user prompt for %s", request.component_type)
            return self._fallback("no skill or user instructions")

        self._ensure_session(request)
        ctx = self.analyzer.analyze(request.plugin_dir)
        prompt = build_prompt(skill, ctx, request.component_type, request.name, request.extra)
        self.session_logger.log_output("ai-prompt", prompt)

        # PROMPTED
        self._say(f"  Generating with AI ({self.client.provider_name})...")
        response = self.client.generate(prompt)
        if not response.success:
            self.session_logger.log_error(f"AI generation failed: {response.error}")
            self._warn(f"  AI generation failed: {response.error}")
            return self._fallback(f"AI call failed: {response.error}")

        # RECEIVED
        self.session_logger.log_output("ai-response", response.content)
        parsed = self.parser(response.content)
        if not parsed.ok:
            self.session_logger.log_error(f"AI parse failed: {parsed.error}")
            self.session_logger.log_output("ai-response-raw", response.content)
            logger.debug("Unparseable AI response:\n%s", response.content)
            self._warn("  Failed to parse AI response. Falling back to template generation.")
            self._warn(f"  {self._log_path_hint()}")
            return self._fallback(f"parse failed: {parsed.error}")

        # PARSED
        code = parsed.code
        issues = self.validator.validate(code, request.plugin_id, request.plugin_dir)
        if self.validator.has_blocking_issue(issues):
            self.session_logger.log_error(f"AI output blocked by {len(issues)} validation issue(s)")
            self.session_logger.log_output("ai-validation", "\n".join(str(i) for i in issues))
            logger.debug("Blocking validation issues:\n%s", "\n".join(str(i) for i in issues))
            self._warn("  AI output failed validation. Falling back to template generation.")
            self._print_issues(issues)
            self._warn(f"  {self._log_path_hint()}")
            return self._fallback("validation blocked", code=code, issues=issues)

        # VALIDATED
        if issues:
            self.session_logger.log_output("ai-validation", "\n".join(str(i) for i in issues))
            self._warn("  AI output validation warnings:")
            self._print_issues(issues)

        try:
            code.write_to(request.plugin_dir)
        except (OSError, ValueError) as e:
            self.session_logger.log_error(f"Failed to write AI-generated files: {e}")
            self._warn(f"  Failed to write AI-generated files: {e}")
            return self._fallback(f"write failed: {e}", code=code, issues=issues)

        self.session_logger.log_info(
            f"Generated {request.component_type} {request.name} with AI ({len(code.files)} file(s))"
        )
        self._say("  Generated with AI")
        return GenerationOutcome(GenerationState.WRITTEN, code=code, issues=issues)

    def _fallback(self, reason: str, code=None, issues=None) -> GenerationOutcome:
        logger.info("Falling back to template generation: %s", reason)
        return GenerationOutcome(
            GenerationState.FALLBACK, code=code, issues=list(issues or []), reason=reason,
        )

    def _print_issues(self, issues: List[ValidationIssue]) -> None:
        limit = self.config.guardrails.max_displayed_issues
        for issue in issues[:limit]:
            self._warn(f"    - {issue}")
        if len(issues) > limit:
            self._warn(f"    ... and {len(issues) - limit} more")

    def _log_path_hint(self) -> str:
        if self.session_logger.session_log_file is not None:
            return f"See log for details: {self.session_logger.session_log_file.resolve()}"
        return f"Session log unavailable (could not write to {self.session_logger.log_dir})"

    def _say(self, message: str) -> None:
        print(message, file=self.out)

    def _warn(self, message: str) -> None:
        print(message, file=self.err)
