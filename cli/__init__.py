"""
bbs-indexer CLI - Board log indexer

Commands:
- bbs-indexer replay / rebuild - Apply a JSONL board log to the index
- bbs-indexer cursor / digest - Inspect index progress and convergence
- bbs-indexer search posts/threads - Query the index
- bbs-indexer log tail/inspect - Look at raw log entries
- bbs-indexer serve - HTTP query API
"""

__version__ = "0.1.0"
