from mockbase.services.backend import MockBackendService, Subscription

__all__ = ["MockBackendService", "Subscription"]
