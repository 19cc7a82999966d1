from dealmatch.api.v1.swipes.endpoints import router

__all__ = ["router"]
