"""API v1 router."""

from fastapi import APIRouter, Depends

from agentline.api.v1.endpoints import account, agents, integrations, phone_numbers, webhooks
from agentline.core.auth import get_current_client

router = APIRouter()

# Webhooks authenticate by signature or shared secret
router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])

# Protected routes (require JWT)
_auth = [Depends(get_current_client)]
router.include_router(agents.router, prefix="/agents", tags=["agents"], dependencies=_auth)
router.include_router(phone_numbers.router, prefix="/phone-numbers", tags=["phone-numbers"], dependencies=_auth)
router.include_router(integrations.router, prefix="/integrations", tags=["integrations"], dependencies=_auth)
router.include_router(account.router, prefix="/account", tags=["account"], dependencies=_auth)
