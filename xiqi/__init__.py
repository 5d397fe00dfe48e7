from xiqi.xiqi_parser import parse
from xiqi.xiqi_interpreter import Evaluator, evaluate
from xiqi.xiqi_datatypes import Environment
from xiqi.xiqi_runtime import ScriptRunner, ExecutionResult

__all__ = [
    "parse",
    "evaluate",
    "Evaluator",
    "Environment",
    "ScriptRunner",
    "ExecutionResult",
]
