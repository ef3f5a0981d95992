"""
Тесты ответа на вопросы: поиск контекста, формат промпта, проверки модели и индекса.
"""

import pytest

from docqa.embeddings.client import EmbeddingsClient
from docqa.errors import InvalidInputError, ModelMismatchError, NotIndexedError
from docqa.indexing.chunker import chunk_text
from docqa.indexing.pipeline import build_store
from docqa.llm.client import LLMClient
from docqa.rag.pipeline import SYSTEM_PROMPT, QueryAnswerer
from tests.conftest import FAKE_EMBED_MODEL, FOX_QUESTION, FOX_TEXT


@pytest.fixture
def fox_store(fox_embedder):
    chunks = chunk_text(FOX_TEXT, size=20, overlap=5)
    return build_store(FAKE_EMBED_MODEL, chunks, [fox_embedder(c.text) for c in chunks])


def make_answerer(fake, store, model=FAKE_EMBED_MODEL, top_k=2) -> QueryAnswerer:
    return QueryAnswerer(
        store_provider=lambda: store,
        embeddings_client=EmbeddingsClient(model=model, client=fake),
        llm_client=LLMClient(model="fake-chat", client=fake),
        top_k=top_k,
    )


@pytest.mark.asyncio
async def test_answer_uses_most_similar_chunks(fake_openai, fox_store):
    result = await make_answerer(fake_openai, fox_store).answer(FOX_QUESTION)

    assert result.answer == "The fox is brown."
    assert len(result.snippets) == 2
    assert "brown fox" in result.snippets[0]
    assert result.snippets == [FOX_TEXT[0:20], FOX_TEXT[15:35]]
    assert result.scores == sorted(result.scores, reverse=True)


@pytest.mark.asyncio
async def test_prompt_contains_system_message_and_context(fake_openai, fox_store):
    await make_answerer(fake_openai, fox_store).answer("  what   color is\nthe fox? ")

    call = fake_openai.completions.calls[0]
    assert call["model"] == "fake-chat"
    system, user = call["messages"]
    assert system == {"role": "system", "content": SYSTEM_PROMPT}
    assert user["role"] == "user"
    assert user["content"] == f"Context: {FOX_TEXT[0:20]}\n\n{FOX_TEXT[15:35]}\n\nQuestion: {FOX_QUESTION}"
    # the question is embedded in its normalized form
    assert fake_openai.embeddings.calls[-1] == [FOX_QUESTION]


@pytest.mark.asyncio
async def test_k_overrides_default_and_is_capped_by_store_size(fake_openai, fox_store):
    answerer = make_answerer(fake_openai, fox_store)

    assert len((await answerer.answer(FOX_QUESTION, k=1)).snippets) == 1
    assert len((await answerer.answer(FOX_QUESTION, k=10)).snippets) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("question", ["", "   ", "\n\t"])
async def test_blank_question_is_rejected_before_any_call(fake_openai, fox_store, question):
    with pytest.raises(InvalidInputError):
        await make_answerer(fake_openai, fox_store).answer(question)
    assert fake_openai.embeddings.calls == []
    assert fake_openai.completions.calls == []


@pytest.mark.asyncio
async def test_non_positive_k_is_rejected(fake_openai, fox_store):
    with pytest.raises(InvalidInputError):
        await make_answerer(fake_openai, fox_store).answer(FOX_QUESTION, k=0)


@pytest.mark.asyncio
async def test_model_mismatch_is_detected_before_embedding(fake_openai, fox_store):
    answerer = make_answerer(fake_openai, fox_store, model="another-embed-model")

    with pytest.raises(ModelMismatchError) as exc_info:
        await answerer.answer(FOX_QUESTION)
    assert exc_info.value.context == {"index_model": FAKE_EMBED_MODEL, "query_model": "another-embed-model"}
    assert fake_openai.embeddings.calls == []


@pytest.mark.asyncio
async def test_missing_index_propagates(fake_openai):
    def no_index():
        raise NotIndexedError("Please index a document first")

    answerer = QueryAnswerer(
        store_provider=no_index,
        embeddings_client=EmbeddingsClient(model=FAKE_EMBED_MODEL, client=fake_openai),
        llm_client=LLMClient(client=fake_openai),
    )
    with pytest.raises(NotIndexedError):
        await answerer.answer(FOX_QUESTION)
    assert fake_openai.completions.calls == []
