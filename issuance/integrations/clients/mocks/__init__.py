"""
Mock issuance API.

Purpose:
- Lets the journey run end to end without a deployed backend.
- Does NOT make network calls; mount the app with httpx.ASGITransport.

Swap:
Point the client at the real API (ISSUANCE_API_URL) to stop using the sandbox.
"""

from .sandbox_api import SANDBOX_API_KEY, SandboxStore, create_sandbox_app

__all__ = ["SANDBOX_API_KEY", "SandboxStore", "create_sandbox_app"]
