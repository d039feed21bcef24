"""
Synchronous Elasticsearch client for the discovery admin tools.

The API uses the async client from ``discovery.dependencies``; the admin
commands run one-off bulk and index operations and use the sync client.
"""

import os

from dotenv import load_dotenv
from elasticsearch import Elasticsearch


# Load environment variables from .env file
load_dotenv()


def _get_client_config() -> dict:
    """
    Build client configuration from environment variables.

    - ELASTICSEARCH_URL: endpoint (default: http://localhost:9200)
    - ELASTICSEARCH_API_KEY, or ELASTICSEARCH_USERNAME and ELASTICSEARCH_PASSWORD
    - ELASTICSEARCH_VERIFY_CERTS: "false" disables certificate checks
    - ELASTICSEARCH_CA_CERTS: CA bundle path
    """
    config = {"hosts": [os.getenv("ELASTICSEARCH_URL", "http://localhost:9200")]}

    api_key = os.getenv("ELASTICSEARCH_API_KEY")
    username = os.getenv("ELASTICSEARCH_USERNAME")
    password = os.getenv("ELASTICSEARCH_PASSWORD")

    if api_key:
        config["api_key"] = api_key
    elif username and password:
        config["basic_auth"] = (username, password)

    if os.getenv("ELASTICSEARCH_VERIFY_CERTS", "true").lower() == "false":
        config["verify_certs"] = False
        config["ssl_show_warn"] = False

    ca_certs = os.getenv("ELASTICSEARCH_CA_CERTS")
    if ca_certs:
        config["ca_certs"] = ca_certs

    return config


def get_es_client() -> Elasticsearch:
    """
    Get a synchronous Elasticsearch client configured from the environment.

    Example:
        >>> es = get_es_client()
        >>> es.info()
    """
    return Elasticsearch(**_get_client_config())
