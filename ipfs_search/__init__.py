"""Components for crawling and indexing IPFS content: protocol access, Tika extraction, Elasticsearch indexes and the crawler."""

__version__ = "0.1.0"