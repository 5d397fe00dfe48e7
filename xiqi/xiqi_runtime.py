"""
Script execution: parses, evaluates and packages the outcome of XIQI source.
"""
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from xiqi.xiqi_parser import parse
from xiqi.xiqi_interpreter import Evaluator
from xiqi.xiqi_datatypes import Environment, Error
from xiqi.xiqi_ast import Program


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        return str(self.error_message or "Unknown error")


class ScriptRunner:
    """Parses and executes XIQI code against one persistent root environment.

    Every language-level call costs several Python frames, so the runner
    raises the interpreter's recursion limit to `recursion_limit` (never
    lowers it) when it starts.
    """

    DEFAULT_RECURSION_LIMIT = 20_000

    _core_loaded_ast: Optional[Program] = None

    def __init__(self, load_core: bool = True, recursion_limit: int = DEFAULT_RECURSION_LIMIT):
        self._initialized = False
        self._load_core = load_core
        self.root_env = Environment()
        self.evaluator = Evaluator()
        if sys.getrecursionlimit() < recursion_limit:
            sys.setrecursionlimit(recursion_limit)

    @staticmethod
    def _format_parse_errors(errors: List[str]) -> str:
        lines = [" parser errors:"]
        lines.extend(f"\t{msg}" for msg in errors)
        return "\n".join(lines)

    @staticmethod
    def _format_runtime_error(e: Exception) -> str:
        match e:
            case RecursionError():
                return "RecursionError: maximum recursion depth exceeded"
            case _:
                return f"InternalError: {e}"

    def _initialize(self):
        """Evaluates root.xiqi into the root environment if not already loaded."""
        if self._initialized or not self._load_core:
            self._initialized = True
            return

        # AST is parsed once and cached on the class
        if ScriptRunner._core_loaded_ast is None:
            core_path = Path(__file__).parent / "root.xiqi"
            program, errors = parse(core_path.read_text(encoding="utf-8"))
            if errors:
                raise RuntimeError(f"Failed to parse root.xiqi:\n{self._format_parse_errors(errors)}")
            ScriptRunner._core_loaded_ast = program

        # Evaluation happens for each instance
        result = self.evaluator.eval(ScriptRunner._core_loaded_ast, self.root_env)
        if isinstance(result, Error):
            raise RuntimeError(f"Error loading root.xiqi: {result.message}")
        self._initialized = True

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script."""
        # Clear side effects for each run
        self.evaluator.side_effects = []
        self._initialize()

        # 1. Parse
        program, errors = parse(source_code)
        if errors:
            return ExecutionResult(
                status='error',
                error_message=self._format_parse_errors(errors),
                errors=errors,
                side_effects=self.evaluator.side_effects
            )

        # 2. Evaluate
        try:
            result = self.evaluator.eval(program, self.root_env)
        except Exception as e:
            return ExecutionResult(
                status='error',
                error_message=self._format_runtime_error(e),
                side_effects=self.evaluator.side_effects
            )

        if isinstance(result, Error):
            return ExecutionResult(
                status='error',
                value=result,
                error_message=result.inspect(),
                side_effects=self.evaluator.side_effects
            )
        return ExecutionResult(
            status='success',
            value=result,
            side_effects=self.evaluator.side_effects
        )
