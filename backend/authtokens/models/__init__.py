from authtokens.models.refresh_token import RefreshToken

__all__ = ["RefreshToken"]
