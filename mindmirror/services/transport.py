# model transport - the single outbound call to gemini
# constructed explicitly and handed to the gateway so tests can swap in a fake

import base64
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from langchain_core.messages import HumanMessage
from langchain_core.output_parsers import StrOutputParser
from langchain_google_genai import ChatGoogleGenerativeAI

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioPayload:
    data: bytes
    mime_type: str


class ModelTransport(Protocol):
    async def generate(self, prompt: str, audio: Optional[AudioPayload] = None) -> str:
        ...


def build_message(prompt: str, audio: Optional[AudioPayload] = None) -> HumanMessage:
    """text-only message, or inline base64 audio followed by the instructions"""
    if audio is None:
        return HumanMessage(content=prompt)
    return HumanMessage(content=[
        {
            "type": "media",
            "mime_type": audio.mime_type,
            "data": base64.b64encode(audio.data).decode("ascii"),
        },
        {"type": "text", "text": prompt},
    ])


class GeminiTransport:
    """gemini via langchain - one request, one string back"""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        temperature: float = 0.4,
        timeout: float = 60.0,
    ):
        self.model = model
        self.llm = ChatGoogleGenerativeAI(
            model=model,
            google_api_key=api_key,
            temperature=temperature,
            timeout=timeout,
            # the gateway's backoff owns retries
            max_retries=1,
        )
        self.chain = self.llm | StrOutputParser()

    async def generate(self, prompt: str, audio: Optional[AudioPayload] = None) -> str:
        message = build_message(prompt, audio)
        logger.info(f"Calling {self.model} ({'audio' if audio else 'text'} prompt, {len(prompt)} chars)")
        return await self.chain.ainvoke([message])
