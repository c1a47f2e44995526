"""
iDempiere Codegen - AI Generation Pipeline
==========================================
AI-assisted code generation for iDempiere plugins with guardrails:
prompt composition, response parsing, classpath-backed validation and
template fallback signalling.
"""

from idempiere_codegen.config import CodegenConfig, get_config, reload_config
from idempiere_codegen.models import (
    GeneratedCode,
    GeneratedFile,
    ProjectContext,
    Severity,
    ValidationIssue,
    has_blocking_issue,
)
from idempiere_codegen.symbol_index import SymbolIndex, SymbolIndexError, build_symbol_index
from idempiere_codegen.classpath import ClasspathResolver, find_p2_repository, is_p2_repository
from idempiere_codegen.prompt_builder import build_prompt, describe_component
from idempiere_codegen.response_parser import ParseResult, parse, parse_response
from idempiere_codegen.guardrails import GuardrailValidator
from idempiere_codegen.ai_client import AIClient, AIResponse, LlamaIndexClient, get_ai_client
from idempiere_codegen.skills import SkillManager, TYPE_TO_SKILL
from idempiere_codegen.project_analyzer import ProjectAnalyzer
from idempiere_codegen.observability import (
    JsonFormatter,
    SessionLogger,
    configure_logging,
    setup_file_logging,
)
from idempiere_codegen.generator import (
    GenerationOutcome,
    GenerationRequest,
    GenerationState,
    SmartScaffold,
)


__all__ = [
    # Core
    "SmartScaffold",
    "GenerationRequest",
    "GenerationOutcome",
    "GenerationState",
    "CodegenConfig",
    "get_config",
    "reload_config",
    # Models
    "GeneratedCode",
    "GeneratedFile",
    "ProjectContext",
    "Severity",
    "ValidationIssue",
    "has_blocking_issue",
    # Classpath
    "SymbolIndex",
    "SymbolIndexError",
    "build_symbol_index",
    "ClasspathResolver",
    "find_p2_repository",
    "is_p2_repository",
    # Prompt / parse / validate
    "build_prompt",
    "describe_component",
    "ParseResult",
    "parse",
    "parse_response",
    "GuardrailValidator",
    # AI client
    "AIClient",
    "AIResponse",
    "LlamaIndexClient",
    "get_ai_client",
    # Context
    "SkillManager",
    "TYPE_TO_SKILL",
    "ProjectAnalyzer",
    # Observability
    "JsonFormatter",
    "SessionLogger",
    "configure_logging",
    "setup_file_logging",
]
