"""CLI for the ingredient matcher."""

import json
import logging
import sys
from pathlib import Path

import typer

from ingredient_matcher.config import settings

# Initialize logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="ingredient-matcher",
    help="Ingredient to product matching CLI",
    add_completion=False,
)


@app.command()
def serve(
    host: str = typer.Option(settings.host, "--host", "-H", help="Host to bind"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
) -> None:
    """
    Start the FastAPI server.

    Example:
        ingredient-matcher serve --host 0.0.0.0 --port 8080
    """
    import uvicorn

    logger.info(f"Starting server on {host}:{port}")
    uvicorn.run(
        "ingredient_matcher.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@app.command("load-products")
def load_products(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with products"),
    redis_url: str = typer.Option(None, "--redis-url", "-r", help="Redis URL"),
) -> None:
    """
    Load embedded products into the catalog.

    The file holds a JSON list of objects with ``id``, ``title``,
    ``title_original`` and ``embedding`` fields.

    Example:
        ingredient-matcher load-products products.json
    """
    from ingredient_matcher.store.redis_store import ProductStore

    try:
        products = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(products, list):
            raise ValueError("expected a JSON list of products")

        store = ProductStore(
            redis_url=redis_url or settings.redis_url,
            index_name=settings.index_name,
            key_prefix=settings.key_prefix,
            vector_dim=settings.vector_dim,
            ef_construction=settings.ef_construction,
            m=settings.m,
        )
        store.ensure_index()
        stored = store.upsert_products(products)
        embedded = sum(1 for p in products if p.get("embedding"))

        print(f"✓ Loaded {stored} products ({embedded} with embeddings)")
        store.close()
    except Exception as e:
        logger.error(f"Error loading products: {e}")
        sys.exit(1)


@app.command()
def match(
    ingredients: list[str] = typer.Argument(..., help="Ingredient texts"),
    instructions: str = typer.Option(None, "--instructions", "-i", help="Extra instructions"),
    production: bool = typer.Option(
        False, "--production", "-P", help="Only print confident product ids"
    ),
    redis_url: str = typer.Option(None, "--redis-url", "-r", help="Redis URL"),
) -> None:
    """
    Match ingredients against the catalog.

    Example:
        ingredient-matcher match "2 dl fløde" "1 løg" --production
    """
    from ingredient_matcher.sdk import IngredientMatcher

    try:
        with IngredientMatcher(redis_url=redis_url) as sdk:
            if production:
                outcome = sdk.match_production(ingredients, instructions)
                if outcome.payload:
                    print("✓ Accepted product ids:")
                    for product_id in outcome.payload:
                        print(f"  {product_id}")
                else:
                    print(f"✗ No match at or above {sdk.production_threshold:.2f}")
                return

            outcome = sdk.match_full(ingredients, instructions)
            for result in outcome.payload:
                print(f"{result['ingredient'] or '(empty)'}:")
                if not result["matches"]:
                    print("  ✗ No match found")
                for i, candidate in enumerate(result["matches"], 1):
                    print(f"  {i}. {candidate['id']}: {candidate['title']} ({candidate['score']:.3f})")
    except Exception as e:
        logger.error(f"Error matching ingredients: {e}")
        sys.exit(1)


@app.command("cache-stats")
def cache_stats(
    redis_url: str = typer.Option(None, "--redis-url", "-r", help="Redis URL"),
) -> None:
    """Show recipe cache statistics."""
    from ingredient_matcher.sdk import IngredientMatcher

    try:
        with IngredientMatcher(redis_url=redis_url) as sdk:
            stats = sdk.recipe_cache.stats()
        print(f"Entries: {stats['total_entries']} ({stats['expired_entries']} expired)")
        print(f"Total hits: {stats['total_hits']}")
        print(f"Average hits: {stats['average_hits']:.2f}")
    except Exception as e:
        logger.error(f"Error reading cache stats: {e}")
        sys.exit(1)


@app.command("cache-cleanup")
def cache_cleanup(
    redis_url: str = typer.Option(None, "--redis-url", "-r", help="Redis URL"),
) -> None:
    """Delete expired recipe cache entries."""
    from ingredient_matcher.sdk import IngredientMatcher

    try:
        with IngredientMatcher(redis_url=redis_url) as sdk:
            deleted = sdk.cleanup_cache()
        print(f"✓ Removed {deleted} expired entries")
    except Exception as e:
        logger.error(f"Error cleaning up cache: {e}")
        sys.exit(1)


@app.command()
def info() -> None:
    """Display configuration information."""
    print(f"Redis URL: {settings.redis_url}")
    print(f"Index name: {settings.index_name}")
    print(f"Embed provider: {settings.embed_provider}")
    print(f"Embed model: {settings.embed_model_name}")
    print(f"Vector dimension: {settings.vector_dim}")
    print(f"Production threshold: {settings.production_threshold:.2f}")
    print(f"Recipe cache TTL: {settings.cache_ttl_months} month(s)")


if __name__ == "__main__":
    app()
