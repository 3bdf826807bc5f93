from __future__ import annotations

import csv
import os

import numpy as np

from redgray.article_refs import INPUT_DATA
from redgray.data.dataset import DataInstanceSet
from redgray.errors import DatasetError
from redgray.logging import LOGGER


class _LabelEncoder:
    def __init__(self, text: bool) -> None:
        self._text = text
        self._codes: dict[str, int] = {}

    def __call__(self, token: str, line_number: int) -> int:
        token = token.strip()
        if self._text:
            return self._codes.setdefault(token, len(self._codes))
        try:
            return int(token)
        except ValueError as exc:
            raise DatasetError(f"line {line_number}: class must be an integer, got {token!r}") from exc


def _split_class(tokens: list[str], class_first: bool) -> tuple[str, list[str]]:
    if class_first:
        return tokens[0], tokens[1:]
    return tokens[-1], tokens[:-1]


def _parse_floats(tokens: list[str], line_number: int) -> list[float]:
    try:
        return [float(token) for token in tokens]
    except ValueError as exc:
        raise DatasetError(f"line {line_number}: {exc}") from exc


def _open(path: str):
    if not os.path.isfile(path):
        LOGGER.event("reader.missing", section=INPUT_DATA, data={"path": path})
        raise DatasetError(f"input file not found: {path}")
    return open(path, "r", encoding="utf-8", newline="")


def read_csv(
    path: str,
    *,
    class_text: bool = False,
    class_first: bool = False,
    max_rows: int | None = None,
    ignore_rows: int = 0,
) -> DataInstanceSet:
    """Read a feature CSV with one class column (last, or first).

    Reading stops at the first line holding a single token, after
    ``max_rows`` instances, and skips the first ``ignore_rows`` lines.
    """
    labels_of = _LabelEncoder(class_text)
    rows: list[list[float]] = []
    labels: list[int] = []
    with _open(path) as handle:
        for line_number, tokens in enumerate(csv.reader(handle), start=1):
            if len(tokens) <= 1:
                break
            if max_rows is not None and len(rows) == max_rows:
                break
            if line_number <= ignore_rows:
                continue
            label_token, feature_tokens = _split_class(tokens, class_first)
            labels.append(labels_of(label_token, line_number))
            rows.append(_parse_floats(feature_tokens, line_number))
    if not rows:
        raise DatasetError(f"no instances read from {path}")
    widths = {len(row) for row in rows}
    if len(widths) != 1:
        raise DatasetError(f"rows of {path} must have the same number of features")
    dataset = DataInstanceSet.from_features(np.asarray(rows, dtype=np.float64), labels)
    LOGGER.event(
        "reader.csv",
        section=INPUT_DATA,
        data={"path": path, "instances": len(rows), "features": widths.pop()},
    )
    return dataset


def read_csv_distance(
    path: str,
    *,
    class_text: bool = False,
    class_first: bool = False,
) -> DataInstanceSet:
    """Read a dissimilarity matrix CSV, one row per instance plus a class column.

    The matrix is symmetrized on load.
    """
    labels_of = _LabelEncoder(class_text)
    rows: list[list[float]] = []
    labels: list[int] = []
    with _open(path) as handle:
        for line_number, tokens in enumerate(csv.reader(handle), start=1):
            if len(tokens) <= 1:
                break
            label_token, value_tokens = _split_class(tokens, class_first)
            labels.append(labels_of(label_token, line_number))
            rows.append(_parse_floats(value_tokens, line_number))
    if not rows:
        raise DatasetError(f"no instances read from {path}")
    if any(len(row) != len(rows) for row in rows):
        raise DatasetError(
            f"{path} must hold a square matrix, got {len(rows)} rows of widths "
            + ", ".join(sorted({str(len(row)) for row in rows}))
        )
    dataset = DataInstanceSet.from_dissimilarities(np.asarray(rows, dtype=np.float64), labels)
    LOGGER.event(
        "reader.csv_distance",
        section=INPUT_DATA,
        data={"path": path, "instances": len(rows)},
    )
    return dataset
