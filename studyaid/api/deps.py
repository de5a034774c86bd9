from fastapi import Depends, Header

from studyaid.services.identity import bearer_token, resolve_user_id
from studyaid.services.providers import Providers, get_providers


def providers_dep() -> Providers:
    return get_providers()


def get_current_user_id(
    authorization: str | None = Header(default=None),
    providers: Providers = Depends(providers_dep),
) -> str:
    return resolve_user_id(bearer_token(authorization), providers.settings)
