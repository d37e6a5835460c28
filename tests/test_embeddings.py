"""Tests for embeddings generation with mocked OpenAI API."""

from unittest.mock import MagicMock, patch

import pytest

from chayo.core.embeddings import embed_texts, embed_texts_async


@pytest.fixture
def mock_openai_response():
    """Create a mock OpenAI embeddings response."""

    def _create_response(num_embeddings: int, dimension: int = 1536, reverse: bool = False):
        mock_response = MagicMock()
        mock_response.data = []

        for i in range(num_embeddings):
            mock_embedding = MagicMock()
            mock_embedding.index = i
            mock_embedding.embedding = [float(i)] * dimension
            mock_response.data.append(mock_embedding)

        if reverse:
            mock_response.data.reverse()
        return mock_response

    return _create_response


def test_embed_texts_single(mock_openai_response):
    """Test embedding a single segment."""
    with patch("chayo.core.embeddings._get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.return_value = mock_openai_response(1)
        mock_get_client.return_value = mock_client

        embeddings = embed_texts(["Assistant: ¿Cómo se llama?\nUser: Panadería Luna"])

        assert len(embeddings) == 1
        assert len(embeddings[0]) == 1536
        mock_client.embeddings.create.assert_called_once()


def test_embed_texts_preserves_input_order(mock_openai_response):
    """Vectors come back in input order even if the API reorders them."""
    with patch("chayo.core.embeddings._get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.return_value = mock_openai_response(3, reverse=True)
        mock_get_client.return_value = mock_client

        embeddings = embed_texts(["one", "two", "three"])

        assert [e[0] for e in embeddings] == [0.0, 1.0, 2.0]


def test_embed_texts_empty():
    """Test embedding empty list."""
    assert embed_texts([]) == []


def test_embed_texts_dimension_mismatch(mock_openai_response):
    """Test that wrong dimension raises ValueError."""
    with patch("chayo.core.embeddings._get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.return_value = mock_openai_response(1, dimension=512)
        mock_get_client.return_value = mock_client

        with pytest.raises(ValueError, match="dimension mismatch"):
            embed_texts(["Test"])


def test_embed_texts_count_mismatch(mock_openai_response):
    with patch("chayo.core.embeddings._get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.return_value = mock_openai_response(1)
        mock_get_client.return_value = mock_client

        with pytest.raises(ValueError, match="Expected 2 embeddings"):
            embed_texts(["a", "b"])


@pytest.mark.asyncio
async def test_embed_texts_async_delegates(mock_openai_response):
    with patch("chayo.core.embeddings._get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.return_value = mock_openai_response(2)
        mock_get_client.return_value = mock_client

        embeddings = await embed_texts_async(["a", "b"])

        assert len(embeddings) == 2
