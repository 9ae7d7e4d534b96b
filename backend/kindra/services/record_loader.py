"""
Lenient loading of raw records into validated models.

A record that fails validation is logged and skipped; the rest of the
batch is still returned.
"""
import logging
from typing import Any, Iterable, List, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError

from kindra.models.schemas import Connection, CycleRecord, Moment

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _load(model: Type[ModelT], raw: Iterable[Any], kind: str) -> List[ModelT]:
    records = []
    skipped = 0
    for index, item in enumerate(raw or []):
        if isinstance(item, model):
            records.append(item)
            continue
        try:
            records.append(model.model_validate(dict(item) if isinstance(item, Mapping) else item))
        except ValidationError as e:
            skipped += 1
            logger.warning(f"⚠️ Skipping invalid {kind} record at index {index}: {e.errors()[0]['msg']}")

    if skipped:
        logger.warning(f"⚠️ Skipped {skipped} invalid {kind} records, kept {len(records)}")
    return records


def load_moments(raw: Iterable[Any]) -> List[Moment]:
    return _load(Moment, raw, "moment")


def load_cycles(raw: Iterable[Any]) -> List[CycleRecord]:
    return _load(CycleRecord, raw, "cycle")


def load_connections(raw: Iterable[Any]) -> List[Connection]:
    return _load(Connection, raw, "connection")
