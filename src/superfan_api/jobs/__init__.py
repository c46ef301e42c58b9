from .redemption_holds import release_expired_redemption_holds

__all__ = ["release_expired_redemption_holds"]
