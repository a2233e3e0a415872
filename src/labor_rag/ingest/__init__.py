"""Document ingestion: extraction, normalisation, chunking and storage."""
