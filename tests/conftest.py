import os
import pytest


# List of environment variables that may be modified by tests
_ENV_VARS_TO_ISOLATE = [
    "APP_NAME",
    "ENVIRONMENT",
    "LOG_LEVEL",
    "ELASTICSEARCH_URL",
    "INDEX_QUEUE_NAME",
    "INDEX_JOB_MAX_RETRIES",
    "INDEX_NUMBER_OF_SHARDS",
    "INDEX_NUMBER_OF_REPLICAS",
]


@pytest.fixture(autouse=True)
def env_isolation():
    """Isolate environment variables between tests."""
    backup = {k: os.environ.get(k) for k in _ENV_VARS_TO_ISOLATE}
    try:
        yield
    finally:
        for k, v in backup.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


@pytest.fixture(autouse=True)
def search_globals_isolation():
    """Reset cached settings and process-wide search objects between tests."""
    from searchable.core.config import reset_settings
    from searchable.core.search.client import set_search_client
    from searchable.core.search.facade import reset_article_search

    reset_settings()
    set_search_client(None)
    reset_article_search()
    try:
        yield
    finally:
        reset_settings()
        set_search_client(None)
        reset_article_search()


@pytest.fixture
def article():
    """A fully populated article."""
    from datetime import date

    from searchable.models.article import Article, Author, Category, Comment

    return Article(
        id=1,
        title="Quantum Gravity Explained",
        content="Loop quantum gravity and string theory compared.",
        abstract="A short tour of quantum gravity.",
        published_on=date(2024, 3, 1),
        categories=[Category(title="physics"), Category(title="science")],
        authors=[
            Author(first_name="Ada", last_name="Lovelace"),
            Author(first_name="Alan", last_name="Turing"),
        ],
        comments=[
            Comment(
                body="Great read",
                stars=5,
                pick=True,
                user="reader1",
                user_location="Prague",
            ),
            Comment(body="Too long", stars=2, user="reader2"),
        ],
    )
