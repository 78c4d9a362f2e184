"""
Issuance API clients.

- real_http/: talks to the deployed issuance API
- mocks/: in-process simulation of the same API for demos and tests

Both speak the contracts in issuance/integrations/contracts.
"""
