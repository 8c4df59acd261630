"""
Fiat conversion and top-up sizing in exact decimal arithmetic.
"""

from decimal import ROUND_FLOOR, Decimal, localcontext

# Enough digits for uint256 balances multiplied by any realistic price
DECIMAL_PRECISION = 100


class FundingCalculator:
    """Calculator for balance valuation and top-up amounts."""

    @staticmethod
    def unit_scale(unit_decimals: int) -> Decimal:
        """Divisor between base units and whole units (10**decimals)."""
        return Decimal(10) ** unit_decimals

    @classmethod
    def balance_to_fiat(
        cls, raw_balance: int, fiat_per_unit: Decimal, unit_decimals: int = 18
    ) -> Decimal:
        """Value a base-unit balance in fiat."""
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return (Decimal(raw_balance) / cls.unit_scale(unit_decimals)) * fiat_per_unit

    @staticmethod
    def is_sufficient(balance_fiat: Decimal, threshold_fiat: Decimal) -> bool:
        """A balance equal to the threshold counts as sufficient."""
        return balance_fiat >= threshold_fiat

    @classmethod
    def top_up_units(
        cls, top_up_amount_fiat: Decimal, fiat_per_unit: Decimal, unit_decimals: int = 18
    ) -> int:
        """
        Convert a fiat top-up into base units, truncating toward zero.

        Never rounds up, so the funded amount does not exceed the fiat target.
        """
        if fiat_per_unit <= 0:
            raise ValueError(f"Price must be positive, got {fiat_per_unit}")

        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            units = (top_up_amount_fiat / fiat_per_unit) * cls.unit_scale(unit_decimals)
            return int(units.to_integral_value(rounding=ROUND_FLOOR))

    @classmethod
    def units_to_whole(cls, units: int, unit_decimals: int = 18) -> Decimal:
        """Express base units as whole asset units, for display."""
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return Decimal(units) / cls.unit_scale(unit_decimals)
