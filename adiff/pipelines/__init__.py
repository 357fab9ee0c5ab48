from .function_diff import FunctionDiffPipeline

__all__ = ["FunctionDiffPipeline"]
