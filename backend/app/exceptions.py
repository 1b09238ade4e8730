"""Typed trade rejections.

All subclass ValueError so callers that only care about "bad request" can keep
catching ValueError. Every rejection is raised before any state is mutated.
"""


class TradeRejected(ValueError):
    code = "trade_rejected"


class UserNotFound(TradeRejected):
    code = "user_not_found"


class MarketUnavailable(TradeRejected):
    code = "market_unavailable"


class OutcomeNotFound(TradeRejected):
    code = "outcome_not_found"


class InsufficientFunds(TradeRejected):
    code = "insufficient_funds"


class InsufficientHoldings(TradeRejected):
    code = "insufficient_holdings"


class InvalidQuantity(TradeRejected):
    code = "invalid_quantity"


class InvalidSide(TradeRejected):
    code = "invalid_side"
