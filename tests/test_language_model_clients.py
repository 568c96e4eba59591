"""
Tests for the embedding and generation wrappers over the OpenAI SDK:
request shape, response unpacking and error translation.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from rag_pipeline.embedder import EmbeddingClient, build_embedder, translate_openai_error, LocalEmbeddingClient
from rag_pipeline.exceptions import UpstreamRejected, UpstreamTransient, UpstreamUnavailable
from rag_pipeline.llm_engine import SYSTEM_PROMPT, GenerationClient, GroundedPrompt
from rag_pipeline.settings import Settings

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


def _status_error(cls, status_code: int):
    response = httpx.Response(status_code, request=_REQUEST)
    return cls(f"HTTP {status_code}", response=response, body=None)


@pytest.mark.parametrize(
    "exc, expected",
    [
        (openai.APIConnectionError(request=_REQUEST), UpstreamUnavailable),
        (openai.APITimeoutError(request=_REQUEST), UpstreamUnavailable),
        (_status_error(openai.RateLimitError, 429), UpstreamTransient),
        (_status_error(openai.InternalServerError, 503), UpstreamTransient),
        (_status_error(openai.BadRequestError, 400), UpstreamRejected),
        (_status_error(openai.AuthenticationError, 401), UpstreamRejected),
        (_status_error(openai.NotFoundError, 404), UpstreamRejected),
    ],
)
def test_translate_openai_error(exc, expected) -> None:
    assert type(translate_openai_error(exc, "embedding")) is expected


class TestEmbeddingClient:
    def test_embed_sends_model_and_text(self) -> None:
        sdk = MagicMock()
        sdk.embeddings.create.return_value = SimpleNamespace(
            data=[SimpleNamespace(index=0, embedding=[0.1, 0.2, 0.3])]
        )
        client = EmbeddingClient(sdk, model="text-embedding-3-small", dimension=3)

        vector = client.embed("hello")

        assert vector == [0.1, 0.2, 0.3]
        sdk.embeddings.create.assert_called_once_with(model="text-embedding-3-small", input=["hello"])

    def test_embed_many_restores_input_order(self) -> None:
        sdk = MagicMock()
        sdk.embeddings.create.return_value = SimpleNamespace(
            data=[SimpleNamespace(index=1, embedding=[2.0]), SimpleNamespace(index=0, embedding=[1.0])]
        )
        client = EmbeddingClient(sdk, model="m", dimension=1)

        assert client.embed_many(["a", "b"]) == [[1.0], [2.0]]

    def test_embed_many_of_nothing_makes_no_call(self) -> None:
        sdk = MagicMock()

        assert EmbeddingClient(sdk, model="m", dimension=1).embed_many([]) == []
        sdk.embeddings.create.assert_not_called()

    def test_provider_unreachable_is_surfaced(self) -> None:
        sdk = MagicMock()
        sdk.embeddings.create.side_effect = openai.APIConnectionError(request=_REQUEST)
        client = EmbeddingClient(sdk, model="m", dimension=1)

        with pytest.raises(UpstreamUnavailable) as excinfo:
            client.embed("hello")
        assert isinstance(excinfo.value.__cause__, openai.APIConnectionError)

    def test_empty_input_is_passed_to_provider(self) -> None:
        sdk = MagicMock()
        sdk.embeddings.create.side_effect = _status_error(openai.BadRequestError, 400)
        client = EmbeddingClient(sdk, model="m", dimension=1)

        with pytest.raises(UpstreamRejected):
            client.embed("")
        sdk.embeddings.create.assert_called_once()

    def test_build_embedder_selects_backend(self) -> None:
        assert isinstance(build_embedder(Settings(), client=MagicMock()), EmbeddingClient)
        local = build_embedder(Settings(embedding_backend="local", local_embed_model="all-MiniLM-L6-v2"))
        assert isinstance(local, LocalEmbeddingClient)
        assert local.dimension is None


class TestGenerationClient:
    def _completion(self, content):
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    def test_generate_sends_grounded_messages(self) -> None:
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = self._completion("  Paris.  ")
        client = GenerationClient(sdk, model="gpt-4o-mini", temperature=0.0)

        answer = client.generate(GroundedPrompt(context="The capital of France is Paris.", question="Capital?"))

        assert answer == "Paris."
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        messages = kwargs["messages"]
        assert [m["role"] for m in messages] == ["system", "user"]
        assert messages[0]["content"] == SYSTEM_PROMPT
        assert "The capital of France is Paris." in messages[1]["content"]
        assert "Capital?" in messages[1]["content"]

    def test_system_instruction_demands_grounding(self) -> None:
        assert "ONLY" in SYSTEM_PROMPT
        assert "does not cover" in SYSTEM_PROMPT

    def test_empty_completion_is_rejected(self) -> None:
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = self._completion(None)

        with pytest.raises(UpstreamRejected):
            GenerationClient(sdk, model="m").complete([{"role": "user", "content": "hi"}])

    def test_server_error_is_transient(self) -> None:
        sdk = MagicMock()
        sdk.chat.completions.create.side_effect = _status_error(openai.InternalServerError, 500)

        with pytest.raises(UpstreamTransient):
            GenerationClient(sdk, model="m").complete([{"role": "user", "content": "hi"}])
