"""
Test suite for the board log indexer.

Focus areas:
- Idempotent, crash-safe replay and the persisted cursor
- Entity repository counters, soft delete and search
- Signature verification and view digests
- HTTP and command line surfaces
"""
