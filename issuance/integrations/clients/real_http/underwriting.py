"""
Underwriting cases.

Cases are created by the server when an application is submitted. The list
endpoint only returns cases that were referred for a human decision; once a
case is decided it has to be fetched by id.
"""

from __future__ import annotations

from typing import List

from issuance.integrations.contracts.interfaces import UnderwritingCase, UWDecisionInput

from .base import ApiTransport, path_segment


class UnderwritingClient:
    def __init__(self, transport: ApiTransport) -> None:
        self.transport = transport

    async def list_referred_cases(self) -> List[UnderwritingCase]:
        return await self.transport.request_model_list(UnderwritingCase, "GET", "/underwriting/cases")

    async def get_case(self, case_id: str) -> UnderwritingCase:
        return await self.transport.request_model(
            UnderwritingCase, "GET", f"/underwriting/cases/{path_segment(case_id)}"
        )

    async def decide_case(self, case_id: str, decision: UWDecisionInput) -> UnderwritingCase:
        """Record an operator decision (approved or declined) on a referred case."""
        return await self.transport.request_model(
            UnderwritingCase,
            "POST",
            f"/underwriting/cases/{path_segment(case_id)}:decide",
            json=decision.model_dump(mode="json"),
        )
