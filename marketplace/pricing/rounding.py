"""
Politique d'arrondi partagée pour les conversions HT <-> TTC en montants entiers.
Le tunnel de paiement ne recalcule jamais un prix: il consomme le TTC stocké.
Ces helpers servent à l'édition du catalogue; la politique vient de la configuration
(ROUNDING_POLICY -> CheckoutSettings.rounding) et doit être passée explicitement.
"""
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from enum import Enum
from typing import Union

Number = Union[int, float, str, Decimal]

DEFAULT_TAX_RATE = Decimal("0.10")

class RoundingPolicy(str, Enum):
    ROUND = "round"
    FLOOR = "floor"
    CEIL = "ceil"

_DECIMAL_MODES = {
    RoundingPolicy.ROUND: ROUND_HALF_UP,
    RoundingPolicy.FLOOR: ROUND_FLOOR,
    RoundingPolicy.CEIL: ROUND_CEILING,
}

def _as_decimal(value: Number) -> Decimal:
    # float -> str d'abord: Decimal(0.1) garderait la valeur binaire
    return value if isinstance(value, Decimal) else Decimal(str(value))

def apply_rounding(value: Number, policy: Union[RoundingPolicy, str] = RoundingPolicy.ROUND) -> int:
    """Arrondit à l'entier selon la politique (round = demi vers le haut)."""
    mode = _DECIMAL_MODES[RoundingPolicy(policy)]
    return int(_as_decimal(value).quantize(Decimal("1"), rounding=mode))

def to_tax_inclusive(
    amount_excl: Number,
    policy: Union[RoundingPolicy, str],
    tax_rate: Number = DEFAULT_TAX_RATE,
) -> int:
    """
    Prix HT -> TTC entier.
    Ex: to_tax_inclusive(1000, "round") -> 1100 ; to_tax_inclusive(999, "floor") -> 1098
    """
    return apply_rounding(_as_decimal(amount_excl) * (1 + _as_decimal(tax_rate)), policy)

def to_tax_exclusive(
    amount_incl: Number,
    policy: Union[RoundingPolicy, str],
    tax_rate: Number = DEFAULT_TAX_RATE,
) -> int:
    """Prix TTC -> HT entier (inverse de to_tax_inclusive, à l'arrondi près)."""
    return apply_rounding(_as_decimal(amount_incl) / (1 + _as_decimal(tax_rate)), policy)
