"""Cohere embedding provider via Bedrock."""

import json
import logging

import numpy as np

from ingredient_matcher.embeddings.bedrock_client import BedrockClient

logger = logging.getLogger(__name__)

# Cohere models on Bedrock accept at most this many texts per request
MAX_TEXTS_PER_REQUEST = 96


class BedrockEmbedder:
    """AWS Bedrock embedding provider using Cohere embedding models."""

    def __init__(
        self,
        model_id: str = "cohere.embed-v4:0",
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_region: str = "eu-central-1",
        vector_dim: int = 1536,
        read_timeout: float = 30.0,
        connect_timeout: float = 5.0,
        client: BedrockClient | None = None,
    ):
        """
        Initialize the Bedrock embedder.

        Args:
            model_id: Bedrock Cohere embedding model ID.
            aws_access_key_id: AWS access key ID (optional).
            aws_secret_access_key: AWS secret access key (optional).
            aws_region: AWS region for Bedrock.
            vector_dim: Dimension of embeddings requested from the model.
            read_timeout: Seconds to wait for the model response.
            connect_timeout: Seconds to wait for a connection.
            client: Pre-built Bedrock client (mostly for tests).
        """
        self.model_id = model_id
        self._dim = vector_dim

        if client is not None:
            self.bedrock_client = client
            return

        try:
            self.bedrock_client = BedrockClient(
                aws_access_key_id=aws_access_key_id,
                aws_secret_access_key=aws_secret_access_key,
                aws_region=aws_region,
                read_timeout=read_timeout,
                connect_timeout=connect_timeout,
            )
            logger.info(f"Initialized Bedrock embedder with model: {model_id}")
        except Exception as e:
            logger.error(f"Failed to initialize Bedrock embedder: {e}")
            raise

    @property
    def dim(self) -> int:
        """Return the dimension of embeddings."""
        return self._dim

    def _request_body(self, texts: list[str]) -> str:
        body: dict = {
            "texts": texts,
            "input_type": "search_query",
            "truncate": "END",
        }
        # Only v4 models accept an explicit output dimension
        if "embed-v4" in self.model_id:
            body["output_dimension"] = self._dim
            body["embedding_types"] = ["float"]
        return json.dumps(body)

    def encode(self, texts: list[str]) -> np.ndarray:
        """
        Encode texts into embeddings with a single Bedrock request.

        Args:
            texts: List of texts to encode.

        Returns:
            Numpy array of embeddings with shape (len(texts), dim).

        Raises:
            ValueError: If the batch is too large or the response is malformed.
        """
        if not texts:
            return np.empty((0, self._dim), dtype=np.float32)
        if len(texts) > MAX_TEXTS_PER_REQUEST:
            raise ValueError(
                f"Cannot embed {len(texts)} texts in one request (max {MAX_TEXTS_PER_REQUEST})"
            )

        response_body = self.bedrock_client.invoke_model(
            model_id=self.model_id,
            body=self._request_body(texts),
            agent_name="BedrockEmbedder",
        )

        # v3 returns a bare list, v4 returns a mapping keyed by embedding type
        embeddings = response_body.get("embeddings")
        if isinstance(embeddings, dict):
            embeddings = embeddings.get("float")
        if not isinstance(embeddings, list):
            raise ValueError("Bedrock response does not contain float embeddings")

        return np.asarray(embeddings, dtype=np.float32)

    def __repr__(self) -> str:
        """String representation."""
        return f"BedrockEmbedder(model={self.model_id}, dim={self.dim})"
