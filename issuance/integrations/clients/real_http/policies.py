"""Policies: issued asynchronously after an offer is accepted."""

from __future__ import annotations

from typing import Optional

from issuance.integrations.contracts.interfaces import Policy, PolicyFilter, PolicyList

from .base import ApiTransport, path_segment


class PoliciesClient:
    def __init__(self, transport: ApiTransport) -> None:
        self.transport = transport

    async def list_policies(self, policy_filter: Optional[PolicyFilter] = None) -> PolicyList:
        params = (policy_filter or PolicyFilter()).to_params()
        return await self.transport.request_model(PolicyList, "GET", "/policies", params=params or None)

    async def get_policy(self, number: str) -> Policy:
        return await self.transport.request_model(Policy, "GET", f"/policies/{path_segment(number)}")
