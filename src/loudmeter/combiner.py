"""Album-level loudness over several independently measured streams."""

from __future__ import annotations

import logging
from typing import Iterable

from . import aggregation
from .block_log import EnergySnapshot
from .meter import LoudnessMeter
from .results import Measurement

EVENTS = logging.getLogger("loudmeter.events")


class MultiStreamCombiner:
    """Gates the union of several streams' blocks as if they were one programme.

    Block energies are copied from every stream on the first query that needs
    them; later pushes to those streams are not seen. Copying is not
    synchronized, so callers must not push to a stream from another thread
    while the combiner reads it.
    """

    def __init__(self, streams: Iterable[LoudnessMeter]) -> None:
        self.streams = tuple(streams)
        if not self.streams:
            raise ValueError("At least one stream is required.")
        self._gating: EnergySnapshot | None = None
        self._short_term: EnergySnapshot | None = None

    def _gating_snapshot(self) -> EnergySnapshot:
        if self._gating is None:
            self._gating = EnergySnapshot.concatenate([stream.gating_snapshot() for stream in self.streams])
        return self._gating

    def _short_term_snapshot(self) -> EnergySnapshot:
        if self._short_term is None:
            self._short_term = EnergySnapshot.concatenate(
                [stream.short_term_snapshot() for stream in self.streams]
            )
        return self._short_term

    def integrated(self) -> Measurement:
        result = aggregation.integrated_loudness(self._gating_snapshot())
        EVENTS.info(
            "measurement_completed",
            extra={"measurement": "integrated_multiple", "streams": len(self.streams), "value": result.value},
        )
        return result

    def relative_threshold(self) -> Measurement:
        return aggregation.relative_threshold(self._gating_snapshot())

    def loudness_range(self) -> Measurement:
        result = aggregation.loudness_range(self._short_term_snapshot())
        EVENTS.info(
            "measurement_completed",
            extra={"measurement": "loudness_range_multiple", "streams": len(self.streams), "value": result.value},
        )
        return result


def loudness_global_multiple(streams: Iterable[LoudnessMeter]) -> Measurement:
    return MultiStreamCombiner(streams).integrated()


def loudness_range_multiple(streams: Iterable[LoudnessMeter]) -> Measurement:
    return MultiStreamCombiner(streams).loudness_range()
