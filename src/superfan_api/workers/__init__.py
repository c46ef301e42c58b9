from .redemption_holds import RedemptionHoldReleaseWorker

__all__ = ["RedemptionHoldReleaseWorker"]
