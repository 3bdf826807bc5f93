from __future__ import annotations


class RedGrayError(Exception):
    pass


class ConfigError(RedGrayError, ValueError):
    pass


class DistanceMatrixError(RedGrayError, ValueError):
    pass


class DatasetError(RedGrayError, ValueError):
    pass


class NonFiniteLayoutError(RedGrayError):
    def __init__(self, step_index: int, label: str) -> None:
        super().__init__(f"non-finite coordinate in snapshot {step_index} ({label})")
        self.step_index = step_index
        self.label = label
