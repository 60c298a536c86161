"""
Styles de règlement Stripe Connect, choisis par le point d'entrée (jamais détectés à l'exécution).

- SeparateChargesAndTransfers: la session porte seulement un transfer_group; le virement
  au vendeur (net de commission) est fait plus tard. Fonctionne avec un compte qui n'a
  que la capacité de virement.
- DestinationCharge: commission prélevée au paiement (application_fee_amount), le reste
  routé vers le compte vendeur (transfer_data.destination). Exige un onboarding terminé.
"""
from typing import Any, Dict

from marketplace.catalog.models import MerchantAccount
from marketplace.config import CheckoutSettings
from marketplace.payments.errors import AuthorizationError

class SettlementStrategy:
    style: str = ""

    def fee_rate(self, settings: CheckoutSettings) -> float:
        raise NotImplementedError

    def check_merchant(self, merchant: MerchantAccount) -> None:
        """Vérifie les capacités propres au style (le compte acct_ valide est déjà contrôlé)."""
        return None

    def payment_intent_data(self, *, transfer_group: str, application_fee: int, destination: str) -> Dict[str, Any]:
        raise NotImplementedError


class SeparateChargesAndTransfers(SettlementStrategy):
    style = "separate_charges_and_transfers"

    def fee_rate(self, settings: CheckoutSettings) -> float:
        return settings.platform_fee_rate

    def payment_intent_data(self, *, transfer_group: str, application_fee: int, destination: str) -> Dict[str, Any]:
        # pas de on_behalf_of: le compte connecté peut ne pas avoir card_payments
        return {"transfer_group": transfer_group}


class DestinationCharge(SettlementStrategy):
    style = "destination_charge"

    def fee_rate(self, settings: CheckoutSettings) -> float:
        return settings.connect_platform_fee_rate

    def check_merchant(self, merchant: MerchantAccount) -> None:
        if not merchant.onboarding_completed:
            raise AuthorizationError(
                400, "connect_onboarding_incomplete", "Seller onboarding is not completed"
            )

    def payment_intent_data(self, *, transfer_group: str, application_fee: int, destination: str) -> Dict[str, Any]:
        return {
            "application_fee_amount": application_fee,
            "transfer_data": {"destination": destination},
            "transfer_group": transfer_group,
        }
