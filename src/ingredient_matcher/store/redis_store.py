"""Redis product catalog with vector index operations."""

import logging
from typing import Any

import numpy as np
import redis
from redis.commands.search.field import TagField, TextField, VectorField
from redis.commands.search.index_definition import IndexDefinition, IndexType

from ingredient_matcher.errors import VectorStoreError
from ingredient_matcher.types import Candidate, ProductRecord

logger = logging.getLogger(__name__)

RETURN_FIELDS = ("product_id", "title", "title_original", "dist")

# Slack on the range radius so a candidate sitting exactly on the threshold
# survives float32 distance rounding; exact filtering happens on the score.
RADIUS_TOLERANCE = 1e-6


def _decode(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class ProductStore:
    """Redis store for the product catalog."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        index_name: str = "im:products",
        key_prefix: str = "im:product:",
        vector_dim: int = 1536,
        ef_construction: int = 200,
        m: int = 16,
        socket_timeout: float | None = 10.0,
        socket_connect_timeout: float | None = 5.0,
    ):
        """
        Initialize the product store.

        Args:
            redis_url: Redis connection URL.
            index_name: Name of the vector index.
            key_prefix: Prefix for product keys.
            vector_dim: Dimension of product embeddings.
            ef_construction: HNSW ef_construction parameter.
            m: HNSW M parameter.
            socket_timeout: Seconds before a Redis command times out.
            socket_connect_timeout: Seconds before connecting times out.
        """
        self.redis_url = redis_url
        self.index_name = index_name
        self.key_prefix = key_prefix
        self.vector_dim = vector_dim
        self.ef_construction = ef_construction
        self.m = m

        logger.info(f"Connecting to Redis: {redis_url}")
        self.client = redis.from_url(
            redis_url,
            decode_responses=False,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
        )
        self._ensure_connected()

    def _ensure_connected(self) -> None:
        """Ensure Redis connection is working."""
        try:
            self.client.ping()
        except redis.ConnectionError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    def ensure_index(self) -> None:
        """
        Create the vector index if it doesn't exist.

        Products are hashes under ``key_prefix``; only hashes carrying an
        ``embedding`` field take part in vector search.
        """
        try:
            self.client.ft(self.index_name).info()
            logger.info(f"Index {self.index_name} already exists")
            return
        except redis.ResponseError as e:
            if "no such index" in str(e).lower() or "unknown index" in str(e).lower():
                logger.debug(f"Index {self.index_name} does not exist, will create")
            else:
                raise

        logger.info(f"Creating vector index: {self.index_name}")
        schema = (
            TagField("product_id", as_name="product_id"),
            TextField("title", as_name="title"),
            TextField("title_original", as_name="title_original"),
            VectorField(
                "embedding",
                algorithm="HNSW",
                attributes={
                    "TYPE": "FLOAT32",
                    "DIM": self.vector_dim,
                    "DISTANCE_METRIC": "COSINE",
                    "EF_CONSTRUCTION": self.ef_construction,
                    "M": self.m,
                },
                as_name="embedding",
            ),
        )

        try:
            self.client.ft(self.index_name).create_index(
                schema,
                definition=IndexDefinition(index_type=IndexType.HASH, prefix=[self.key_prefix]),
            )
            logger.info(f"Index {self.index_name} created successfully")
        except redis.ResponseError as e:
            if "index already exists" in str(e).lower():
                logger.info(f"Index {self.index_name} already exists")
            else:
                logger.error(f"Failed to create index: {e}")
                raise

    def upsert_products(self, products: list[ProductRecord]) -> int:
        """
        Upsert product records.

        Args:
            products: Records to store. Records without an embedding are stored
                but never returned by searches.

        Returns:
            Number of products stored.
        """
        pipe = self.client.pipeline(transaction=False)
        stored = 0

        for product in products:
            product_id = product.get("id")
            if not product_id:
                raise ValueError("Every product needs an id")

            key = f"{self.key_prefix}{product_id}"
            doc: dict[str, Any] = {"product_id": product_id}
            if product.get("title") is not None:
                doc["title"] = product["title"]
            if product.get("title_original") is not None:
                doc["title_original"] = product["title_original"]

            embedding = product.get("embedding")
            if embedding is not None and len(embedding) > 0:
                vector = self._validated(np.asarray(embedding, dtype=np.float32))
                doc["embedding"] = vector.tobytes()

            # Replace the whole hash so stale fields don't survive
            pipe.delete(key)
            pipe.hset(key, mapping=doc)
            stored += 1

        pipe.execute()
        logger.info(f"Stored {stored} products")
        return stored

    def _validated(self, vector: np.ndarray) -> np.ndarray:
        if vector.ndim != 1:
            raise ValueError("Query embedding must be 1-dimensional")
        if vector.shape[0] != self.vector_dim:
            raise ValueError(
                f"Embedding has dimension {vector.shape[0]}, index expects {self.vector_dim}"
            )
        if not np.all(np.isfinite(vector)):
            raise ValueError("Embedding contains non-finite values")
        return vector.astype(np.float32)

    def _search_args(
        self, vector: np.ndarray, top_k: int, min_score: float | None
    ) -> list[Any]:
        """Build the FT.SEARCH arguments for one query vector."""
        vector_bytes = self._validated(vector).tobytes()

        if min_score is None:
            query = f"*=>[KNN {top_k} @embedding $vec AS dist]"
            params = ["PARAMS", 2, "vec", vector_bytes]
        else:
            radius = max(0.0, 1.0 - min_score) + RADIUS_TOLERANCE
            query = "@embedding:[VECTOR_RANGE $radius $vec]=>{$YIELD_DISTANCE_AS: dist}"
            params = ["PARAMS", 4, "radius", radius, "vec", vector_bytes]

        return [
            "FT.SEARCH",
            self.index_name,
            query,
            *params,
            "SORTBY",
            "dist",
            "ASC",
            "RETURN",
            len(RETURN_FIELDS),
            *RETURN_FIELDS,
            "LIMIT",
            0,
            top_k,
            "DIALECT",
            2,
        ]

    @staticmethod
    def _parse_reply(reply: list[Any]) -> list[Candidate]:
        """Turn a raw FT.SEARCH reply into candidates, keeping Redis' order."""
        candidates: list[Candidate] = []
        # Layout: [total, key, [field, value, ...], key, [field, value, ...], ...]
        for raw_fields in reply[2::2]:
            it = iter(raw_fields)
            fields = {_decode(k): v for k, v in zip(it, it)}

            distance = fields.get("dist")
            try:
                distance = float(_decode(distance))
            except (TypeError, ValueError):
                distance = 1.0

            candidates.append({
                "id": _decode(fields.get("product_id")) or "",
                "title": _decode(fields.get("title")),
                "title_original": _decode(fields.get("title_original")),
                # COSINE distance is 1 - similarity
                "score": 1.0 - distance,
            })
        return candidates

    def knn_search_batch(
        self,
        query_embeddings: list[np.ndarray],
        top_k: int = 3,
        min_score: float | None = None,
    ) -> list[list[Candidate]]:
        """
        Nearest products for several query vectors in one round trip.

        Every query is validated and built before anything is sent; one bad
        vector fails the whole batch.

        Args:
            query_embeddings: 1-D query vectors.
            top_k: Maximum candidates per query.
            min_score: Optional minimum cosine similarity.

        Returns:
            One best-first candidate list per query, in input order.

        Raises:
            VectorStoreError: If a query cannot be built or Redis fails.
        """
        if top_k < 1:
            raise VectorStoreError("top_k must be at least 1")
        if not query_embeddings:
            return []

        try:
            commands = [
                self._search_args(np.asarray(vector), top_k, min_score)
                for vector in query_embeddings
            ]
        except ValueError as e:
            raise VectorStoreError(f"Could not build vector query: {e}") from e

        try:
            pipe = self.client.pipeline(transaction=False)
            for args in commands:
                pipe.execute_command(*args)
            replies = pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Error performing KNN search: {e}")
            raise VectorStoreError(f"Vector search failed: {e}") from e

        if len(replies) != len(commands):
            raise VectorStoreError(
                f"Expected {len(commands)} search replies, got {len(replies)}"
            )
        return [self._parse_reply(reply) for reply in replies]

    def knn_search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 3,
        min_score: float | None = None,
    ) -> list[Candidate]:
        """Nearest products for a single query vector."""
        return self.knn_search_batch([query_embedding], top_k=top_k, min_score=min_score)[0]

    def sample_products(self, limit: int = 10) -> list[dict[str, Any]]:
        """
        Return a few catalog entries ordered by id.

        Returns:
            Dicts with id, title, title_original and has_embedding.
        """
        try:
            keys = sorted(self.client.scan_iter(match=f"{self.key_prefix}*", count=500))
            keys = keys[:limit]
            pipe = self.client.pipeline(transaction=False)
            for key in keys:
                pipe.hmget(key, "product_id", "title", "title_original")
                pipe.hexists(key, "embedding")
            replies = pipe.execute()
        except redis.RedisError as e:
            raise VectorStoreError(f"Could not list products: {e}") from e

        products = []
        for (product_id, title, title_original), has_embedding in zip(
            replies[0::2], replies[1::2], strict=True
        ):
            products.append({
                "id": _decode(product_id),
                "title": _decode(title),
                "title_original": _decode(title_original),
                "has_embedding": bool(has_embedding),
            })
        return products

    def health_check(self) -> bool:
        """
        Check Redis health.

        Returns:
            True if healthy, False otherwise.
        """
        try:
            self.client.ping()
            return True
        except redis.RedisError:
            return False

    def close(self) -> None:
        """Close the Redis connection."""
        self.client.close()

    def __repr__(self) -> str:
        """String representation."""
        return f"ProductStore(index={self.index_name}, dim={self.vector_dim})"
