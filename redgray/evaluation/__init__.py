from .trustworthiness import TrustworthinessEvaluator

__all__ = ["TrustworthinessEvaluator"]
