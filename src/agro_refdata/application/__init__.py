"""Application services orchestrating cache, retry and concurrency."""
