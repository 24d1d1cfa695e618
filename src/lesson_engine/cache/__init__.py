from lesson_engine.cache.processing_cache import ProcessingCache

__all__ = ["ProcessingCache"]
