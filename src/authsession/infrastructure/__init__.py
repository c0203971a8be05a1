"""Infrastructure layer: storage, httpx integration, observability, lifecycle."""
