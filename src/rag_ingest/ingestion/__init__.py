"""
Ingestion — text extraction, chunking, and embedding of uploaded documents.

This package turns one uploaded document into persisted chunks: the
document is downloaded, split into fixed-size word windows, embedded in a
single batched call, and written to a chunk store in order.
"""
