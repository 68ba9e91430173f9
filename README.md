# ipfs_search

Building blocks for crawling and indexing content published on IPFS.

## Modules

- `ipfs_search.resources`: `Resource`, `Reference`, `Stat` and
  `AnnotatedResource`, the `ResourceProtocol` and `ResourceType` enums, and
  the errors raised while crawling. `InvalidResourceError` covers invalid
  content, with the subclasses `UnsupportedTypeError` and
  `DirectoryTooLargeError`. `ExtractorError` covers failed extraction, with the
  subclasses `FileTooLargeError`, `UnexpectedResponseError` and `RequestError`.
- `ipfs_search.documents`: the documents stored in the search indexes.
  These are `File`, `Directory`, `Invalid` and `Update`, along with `Link`,
  `LinkType`, `Language` and `DocumentReference`. Each has a `to_dict()` that
  produces its JSON form. `File.update_from()` merges decoded JSON into a file
  document. `Update.from_dict()` reads the stored `last-seen` and `references`
  fields.
- `ipfs_search.interfaces`: the abstract `ProtocolClient`, `Publisher`,
  `Consumer`, `Queue` and `Extractor` classes.
- `ipfs_search.index`: the abstract `Index` class and `multi_get(indexes,
  doc_id, *fields)`. `multi_get` returns the first index that holds the
  document together with the fetched fields, or `None` when no index holds it.
- `ipfs_search.ipfs`: `IPFS`, a `ProtocolClient` configured by `IPFSConfig`.
  It works through the IPFS HTTP API:
  - `stat()` calls `files/stat`. It fills in the resource's type and size.
    An unreferenced resource whose size equals `partial_size` is marked as a
    partial.
  - `ls()` calls `ls`. It yields the directory's entries as they stream in.
  - `gateway_url()` builds the gateway URL. When the resource has a name
    under a parent, the URL is built from the parent and the escaped name.

  API errors are raised as `IPFSError`. Errors that indicate broken content
  are wrapped in `InvalidResourceError`; `is_invalid_resource_error()` makes
  that decision.
- `ipfs_search.tika`: `TikaExtractor`, configured by `TikaConfig`. It fetches
  file metadata from an ipfs-tika server and merges it into a `File`. Files
  larger than `max_file_size` are refused with `FileTooLargeError`.
- `ipfs_search.es_index`: `ElasticsearchIndex`, an `Index` that uses the REST
  API of one Elasticsearch index:
  - `index()` puts a document.
  - `update()` merges partial fields into a stored document.
  - `get()` fetches source fields and returns `None` on a 404.
- `ipfs_search.crawler`: the `Crawler`, configured by `CrawlerConfig`, and
  the `Indexes` and `Queues` it works with. `Crawler.crawl()` handles a
  resource as follows:
  - Known resources get a new `last-seen` time when they are older than
    `min_update_age`, or when they were reached through a new reference.
    Resources already marked invalid are left alone.
  - New resources of undefined type are stat'ed first, within `stat_timeout`.
  - Files are then extracted and indexed.
  - Directories are listed and indexed with their links. Each entry is
    published to the files, directories or hashes queue with a random
    priority from 1 to 7. Unsupported entries are indexed as invalid straight
    away.
  - Content that turns out to be invalid, unsupported or too large is stored
    in the invalids index together with the error message.
  - Partials are skipped.

  If no directory entry arrives within `dir_entry_timeout`, a `TimeoutError`
  is raised.

## Installing

    pip install .

## Example

    from ipfs_search.crawler import Crawler, CrawlerConfig, Indexes, Queues
    from ipfs_search.es_index import ElasticsearchIndex
    from ipfs_search.ipfs import IPFS, IPFSConfig
    from ipfs_search.tika import TikaConfig, TikaExtractor
    from ipfs_search.resources import AnnotatedResource, Resource, ResourceProtocol

    protocol = IPFS(IPFSConfig())
    extractor = TikaExtractor(TikaConfig(), protocol)

    es_url = "http://localhost:9200"
    indexes = Indexes(
        files=ElasticsearchIndex(es_url, "ipfs_files"),
        directories=ElasticsearchIndex(es_url, "ipfs_directories"),
        invalids=ElasticsearchIndex(es_url, "ipfs_invalids"),
    )

    crawler = Crawler(CrawlerConfig(), indexes, queues, protocol, extractor)
    crawler.crawl(AnnotatedResource(Resource(ResourceProtocol.IPFS, "Qm...")))

Here `queues` is a `Queues` of three `Publisher` objects: `files`,
`directories` and `hashes`. Directory entries are published to them.

## What the package does not do

- It has no command-line program and no long-running worker. Calling
  `Crawler.crawl()` for each resource is left to the application.
- It has no message-queue implementation. The `Publisher`, `Consumer` and
  `Queue` classes are abstract, so queues for directory entries, and delivery
  of resources to crawl, must be supplied.
- It does not create or configure the Elasticsearch indexes themselves.

## Running the tests

    pip install ".[test]"
    pytest