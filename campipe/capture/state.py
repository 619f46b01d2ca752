###############################################################################
# Capture session state
#
# PREVIEW -> FOCUSING -> CAPTURING -> PREVIEW
#
# Focusing and Capturing carry the id of the picture request they belong to,
# so late hardware callbacks of an older request can be recognized.
#
# 2026 Initial release
###############################################################################

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Phase(Enum):
    PREVIEW = "preview"
    FOCUSING = "focusing"
    CAPTURING = "capturing"


@dataclass(frozen=True)
class SessionState:
    phase: Phase = Phase.PREVIEW
    request_id: Optional[int] = None

    @property
    def is_idle(self) -> bool:
        return self.phase is Phase.PREVIEW

    def expects(self, phase: Phase, request_id: int) -> bool:
        return self.phase is phase and self.request_id == request_id

    def __str__(self) -> str:
        if self.request_id is None:
            return self.phase.name
        return f"{self.phase.name}({self.request_id})"


PREVIEW = SessionState()


def focusing(request_id: int) -> SessionState:
    return SessionState(Phase.FOCUSING, request_id)


def capturing(request_id: int) -> SessionState:
    return SessionState(Phase.CAPTURING, request_id)


__all__ = ["Phase", "SessionState", "PREVIEW", "focusing", "capturing"]
