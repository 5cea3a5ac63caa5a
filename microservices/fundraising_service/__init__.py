"""
Fundraising Service

Client-side orchestration for confidential fundraising campaigns:
- Amount parsing/formatting in 6-decimal base units
- Campaign registry cache with explicit invalidation
- Encrypted donations via the FHE relayer
- Signature-gated decryption of raised totals and donor points

Port: 8260
"""

__version__ = "1.0.0"
__service__ = "fundraising_service"
