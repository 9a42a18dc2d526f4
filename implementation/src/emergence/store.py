from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from emergence.types import Currency


@dataclass
class ResourceStore:
    pq: float = 0.0
    pl: float = 0.0
    energy: float = 0.0
    debris: float = 0.0
    atom_units: float = 0.0

    def get(self, currency: Currency) -> float:
        return getattr(self, currency.value)

    def add(self, currency: Currency, amount: float) -> None:
        if amount <= 0.0:
            return
        setattr(self, currency.value, self.get(currency) + amount)

    def has(self, currency: Currency, amount: float) -> bool:
        return self.get(currency) >= amount

    def can_afford(self, costs: Mapping[Currency, float]) -> bool:
        return all(self.has(currency, amount) for currency, amount in costs.items())

    def spend(self, currency: Currency, amount: float) -> bool:
        """Deduct ``amount`` if available. Returns False (and changes nothing) otherwise."""
        if amount <= 0.0:
            return True
        current = self.get(currency)
        if current < amount:
            return False
        setattr(self, currency.value, max(0.0, current - amount))
        return True

    def spend_all(self, costs: Mapping[Currency, float]) -> bool:
        if not self.can_afford(costs):
            return False
        for currency, amount in costs.items():
            self.spend(currency, amount)
        return True

    def reset(self) -> None:
        self.pq = 0.0
        self.pl = 0.0
        self.energy = 0.0
        self.debris = 0.0
        self.atom_units = 0.0
