from fastapi import Depends

from account_api.core.config import Settings, get_settings
from account_api.services.media import MediaUploader
from account_api.services.token_service import TokenManager


def get_token_manager(settings: Settings = Depends(get_settings)) -> TokenManager:
    return TokenManager(settings)


def get_media_uploader(settings: Settings = Depends(get_settings)) -> MediaUploader:
    return MediaUploader(settings)
