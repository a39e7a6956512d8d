from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

#unified upstream errors
class UpstreamError(RuntimeError): ...
class UpstreamTransientError(UpstreamError): ...
class UpstreamTerminalError(UpstreamError): ...

class UpstreamStatusError(UpstreamTransientError):
    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"gemini api {status_code}: {body}")

@dataclass(frozen=True)
class GenerateRequest:
    model: str
    api_key: str
    user_prompt: str
    system_prompt: Optional[str] = None #omitted from the payload when empty
    temperature: float = 0.7

class TextGenerator(ABC):
    @abstractmethod
    def generate(self, model: str, api_key: str, system_prompt: str, user_prompt: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def health_check(self) -> bool:
        raise NotImplementedError
