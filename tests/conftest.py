"""
Shared fixtures: fake OpenAI-compatible clients and a deterministic bag-of-words embedder.

Nothing here talks to the network; the fakes mimic the attribute layout of
``openai.AsyncOpenAI`` (``embeddings.create``, ``chat.completions.create``, ``models.list``).
"""

import asyncio
import re
from types import SimpleNamespace
from typing import Callable, Dict, List, Optional

import httpx
import openai
import pytest

FOX_TEXT = "The quick brown fox jumps over the lazy dog."
FOX_QUESTION = "what color is the fox?"
FAKE_EMBED_MODEL = "fake-embed-1"
TOKEN_RE = re.compile(r"\w+")


def tokenize(text: str) -> List[str]:
    return [token.lower() for token in TOKEN_RE.findall(text)]


class BagOfWordsEmbedder:
    """Counts vocabulary words; unknown words are ignored."""

    def __init__(self, vocabulary: List[str]) -> None:
        self.vocabulary = sorted(set(vocabulary))
        self._index: Dict[str, int] = {word: i for i, word in enumerate(self.vocabulary)}

    @property
    def dimensions(self) -> int:
        return len(self.vocabulary)

    def __call__(self, text: str) -> List[float]:
        vector = [0.0] * len(self.vocabulary)
        for token in tokenize(text):
            idx = self._index.get(token)
            if idx is not None:
                vector[idx] += 1.0
        return vector


class FakeEmbeddings:
    def __init__(
        self,
        embed_fn: Callable[[str], List[float]],
        fail_on_call: Optional[int] = None,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
        reverse: bool = False,
    ) -> None:
        self.embed_fn = embed_fn
        self.fail_on_call = fail_on_call
        self.error = error
        self.delay = delay
        self.reverse = reverse
        self.calls: List[List[str]] = []

    async def create(self, model: str, input: List[str]):
        self.calls.append(list(input))
        call_no = len(self.calls)
        await asyncio.sleep(self.delay)
        if self.fail_on_call is not None and call_no == self.fail_on_call:
            raise self.error or make_connection_error()
        items = [SimpleNamespace(index=i, embedding=self.embed_fn(text)) for i, text in enumerate(input)]
        if self.reverse:
            items.reverse()
        return SimpleNamespace(data=items, model=model)


class FakeCompletions:
    def __init__(self, answer: str, delay: float = 0.0) -> None:
        self.answer = answer
        self.delay = delay
        self.calls: List[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        await asyncio.sleep(self.delay)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.answer))])


class FakeModels:
    def __init__(self, error: Optional[BaseException] = None, delay: float = 0.0) -> None:
        self.error = error
        self.delay = delay

    async def list(self):
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=[SimpleNamespace(id=FAKE_EMBED_MODEL)])


class FakeOpenAI:
    def __init__(self, embed_fn: Callable[[str], List[float]], answer: str = "The fox is brown.", **embed_kwargs) -> None:
        self.embeddings = FakeEmbeddings(embed_fn, **embed_kwargs)
        self.completions = FakeCompletions(answer)
        self.chat = SimpleNamespace(completions=self.completions)
        self.models = FakeModels()
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def _request(path: str = "/v1/embeddings") -> httpx.Request:
    return httpx.Request("POST", f"https://api.openai.com{path}")


def make_status_error(cls, status_code: int):
    request = _request()
    response = httpx.Response(status_code, request=request)
    return cls("error from fake API", response=response, body=None)


def make_connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=_request())


def make_timeout_error() -> openai.APITimeoutError:
    return openai.APITimeoutError(request=_request())


@pytest.fixture
def fox_embedder() -> BagOfWordsEmbedder:
    # "n" and "r" are the word fragments left at the 20/5 chunk boundaries of FOX_TEXT
    return BagOfWordsEmbedder(tokenize(FOX_TEXT) + tokenize(FOX_QUESTION) + ["n", "r"])


@pytest.fixture
def fake_openai(fox_embedder: BagOfWordsEmbedder) -> FakeOpenAI:
    return FakeOpenAI(fox_embedder)
