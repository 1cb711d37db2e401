from dataclasses import dataclass
from typing import Any, Literal, Optional


@dataclass
class AgentResult:
    name: str
    status: Literal["success", "error"]
    message: str
    payload: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"
