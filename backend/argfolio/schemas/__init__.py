# backend/argfolio/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic schemas organized by domain:
- cash_yield: Remunerated-account settings, projections and accrual
- errors: Error response formats
- fixed_deposits: Fixed-deposit state, projections and settlement
- fx: FX quote inputs and conversions
- instruments: Instrument reference data
- lots: Open lots, realized sales and allocation previews
- movements: Ledger movements (append-only)
- validators: Reusable validation functions (symbol, currency)
- valuation: Asset and portfolio valuation

Usage:
    from argfolio.schemas import MovementCreate, MovementResponse
    from argfolio.schemas import PortfolioValuationRequest, PortfolioValuationResponse
"""

from argfolio.schemas.cash_yield import (
    AccrualReportResponse,
    CashYieldConfigRequest,
    CashYieldConfigResponse,
    CashYieldStatusResponse,
    YieldMetricsResponse,
)
from argfolio.schemas.errors import ErrorDetail, FieldError, ValidationErrorDetail
from argfolio.schemas.fixed_deposits import (
    PFPositionResponse,
    PFStateRequest,
    PFStateResponse,
    PFTotalsResponse,
    ProjectionItem,
    ProjectionResponse,
    SettlementReportResponse,
    SettlementRequest,
)
from argfolio.schemas.fx import (
    ConversionRequest,
    ConversionResponse,
    FxPairInput,
    FxQuoteResponse,
    FxQuotesInput,
    FxQuotesResponse,
)
from argfolio.schemas.instruments import InstrumentCreate, InstrumentResponse
from argfolio.schemas.lots import (
    AllocationEntryResponse,
    AllocationPreviewRequest,
    AllocationRequest,
    CostingMethodResponse,
    LotInput,
    LotResponse,
    LotsResponse,
    RealizedSaleResponse,
    SaleAllocationResponse,
)
from argfolio.schemas.movements import (
    FixedDepositTerms,
    LotAllocationInput,
    MovementCreate,
    MovementListResponse,
    MovementResponse,
)
from argfolio.schemas.valuation import (
    AssetMetricsResponse,
    AssetPositionInput,
    AssetValuationRequest,
    AssetValuationResponse,
    CashBalanceResponse,
    CedearDetailsResponse,
    CurrencyExposureResponse,
    PortfolioTotalsResponse,
    PortfolioValuationRequest,
    PortfolioValuationResponse,
    PriceInput,
)

__all__ = [
    # Cash yield
    "AccrualReportResponse",
    "CashYieldConfigRequest",
    "CashYieldConfigResponse",
    "CashYieldStatusResponse",
    "YieldMetricsResponse",
    # Errors
    "ErrorDetail",
    "FieldError",
    "ValidationErrorDetail",
    # Fixed deposits
    "PFPositionResponse",
    "PFStateRequest",
    "PFStateResponse",
    "PFTotalsResponse",
    "ProjectionItem",
    "ProjectionResponse",
    "SettlementReportResponse",
    "SettlementRequest",
    # FX
    "ConversionRequest",
    "ConversionResponse",
    "FxPairInput",
    "FxQuoteResponse",
    "FxQuotesInput",
    "FxQuotesResponse",
    # Instruments
    "InstrumentCreate",
    "InstrumentResponse",
    # Lots
    "AllocationEntryResponse",
    "AllocationPreviewRequest",
    "AllocationRequest",
    "CostingMethodResponse",
    "LotInput",
    "LotResponse",
    "LotsResponse",
    "RealizedSaleResponse",
    "SaleAllocationResponse",
    # Movements
    "FixedDepositTerms",
    "LotAllocationInput",
    "MovementCreate",
    "MovementListResponse",
    "MovementResponse",
    # Valuation
    "AssetMetricsResponse",
    "AssetPositionInput",
    "AssetValuationRequest",
    "AssetValuationResponse",
    "CashBalanceResponse",
    "CedearDetailsResponse",
    "CurrencyExposureResponse",
    "PortfolioTotalsResponse",
    "PortfolioValuationRequest",
    "PortfolioValuationResponse",
    "PriceInput",
]
