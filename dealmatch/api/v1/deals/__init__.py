from dealmatch.api.v1.deals.endpoints import router

__all__ = ["router"]
