"""AUR crawling subsystem.

Structure:
- base.py: HTTP client, page fetcher and the spider contract
- spiders/: listing, details and comments page parsers
- tasks.py: bounded fan-out helper
- orchestrator.py: one listing page -> fully assembled packages
- pipeline.py: BSON checkpoint files
- loader.py: checkpoints / crawled packages -> storage backends
- runner.py: CLI entrypoint

Uses httpx (async) + selectolax for fetching and parsing.
"""
