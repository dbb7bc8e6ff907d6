"""
Campus Portal Backend — Pipeline Stage Results
================================================

What:  The tagged value every before-hook returns.

    Continue            → proceed to the next stage
    ShortCircuit(resp)  → stop here and answer with `resp`; inner stages and
                          the handler never run
    Failure(error)      → stop here and raise `error` once the already-entered
                          after-hooks have unwound

Filters signal ordinary denials with ShortCircuit; exceptions are reserved for
genuine faults.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from starlette.responses import JSONResponse, Response


class Continue:
    """Proceed to the next stage."""

    _instance: Optional["Continue"] = None

    def __new__(cls) -> "Continue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CONTINUE"


CONTINUE = Continue()


@dataclass(frozen=True)
class ShortCircuit:
    response: Response

    @classmethod
    def json(
        cls,
        status_code: int,
        content: Any,
        headers: Optional[Dict[str, str]] = None,
    ) -> "ShortCircuit":
        return cls(JSONResponse(status_code=status_code, content=content, headers=headers))


@dataclass(frozen=True)
class Failure:
    error: BaseException


PipelineResult = Union[Continue, ShortCircuit, Failure]
