"""Run discovered functions out of process and decode their output."""
from .decoder import classify, decode_output
from .runner import FunctionRunner

__all__ = ["FunctionRunner", "classify", "decode_output"]
