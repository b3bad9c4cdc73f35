"""Mock pirate adverts shown between clues."""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class Interstitial:
    headline: str
    body: str
    cta: str
    tag: str
    fine: str
    countdown_seconds: int = 5


DEFAULT_INTERSTITIALS: Sequence[Interstitial] = (
    Interstitial(
        headline="HOT SINGLE MERMAIDS",
        body="in yer waters! Only 3 nautical miles away! They be DYING to meet a scallywag like ye!",
        cta="Meet Mermaids Now",
        tag="SPONSORED",
        fine="*Mermaids may actually be manatees. Results may vary. Not responsible for shipwrecks.",
    ),
    Interstitial(
        headline="YER SHIP HAS 47 BARNACLES!",
        body="Download BarnacleBlocker PRO to clean yer hull INSTANTLY! Yer vessel be runnin' 300% slower!",
        cta="Download FREE Scan",
        tag="WARNING",
        fine="*BarnacleBlocker will install 14 additional toolbars on yer helm.",
    ),
    Interstitial(
        headline="CAPTAIN HOOK HATES HIM!",
        body="Local pirate discovers ONE WEIRD TRICK to find treasure 10x faster. Treasure hunters FURIOUS!",
        cta="Learn His Secret",
        tag="PROMOTED",
        fine="*This pirate was later arrested for fraud on seven seas.",
    ),
    Interstitial(
        headline="FREE PARROT, CLAIM NOW!",
        body="Ye be the 1,000,000th pirate to visit this island! Click below to claim yer FREE parrot!",
        cta="Claim Free Parrot",
        tag="WINNER!!",
        fine="*One parrot per pirate. Parrot may bite. Parrot may reveal location of yer secret treasure.",
    ),
    Interstitial(
        headline="IS YER PEG LEG SLOW?",
        body="Upgrade to PegLeg PRO: carbon fiber, spring-loaded, with GPS navigation! Now 50% off!",
        cta="Shop PegLeg PRO",
        tag="AD",
        fine="*Side effects include: excessive speed, involuntary jigs, and splinters.",
    ),
    Interstitial(
        headline="EXTEND YER PLANK WARRANTY!",
        body="We've been tryin' to reach ye about yer plank's extended warranty! It expires in 2 tides!",
        cta="Call Now 1-800-PLANK",
        tag="URGENT",
        fine="*Plank warranty does not cover walk-the-plank incidents.",
    ),
    Interstitial(
        headline="GROG DELIVERY IN 30 MIN!",
        body="Order now from GrogDash! Premium rum, ale & hardtack delivered straight to yer ship!",
        cta="Order Grog Now",
        tag="NEW",
        fine="*Minimum order: 12 barrels. Delivery by cannon. Breakage expected.",
    ),
    Interstitial(
        headline="LEARN PIRACY IN 6 WEEKS!",
        body="PirateBootcamp Online Academy: get certified in Plundering, Swashbuckling & Sea Shanties!",
        cta="Enroll FREE Trial",
        tag="EDUCATION",
        fine="*Degree not recognized by any navy. 98% of graduates still get caught.",
    ),
)


class InterstitialDeck:
    """Draws interstitials at random, never repeating the previous draw."""

    def __init__(self, items: Sequence[Interstitial] = DEFAULT_INTERSTITIALS, rng: Optional[random.Random] = None) -> None:
        if not items:
            raise ValueError("interstitial deck cannot be empty")
        self._items = tuple(items)
        self._rng = rng or random.Random()
        self.last_index: Optional[int] = None

    def __len__(self) -> int:
        return len(self._items)

    def draw(self) -> Interstitial:
        index = self._rng.randrange(len(self._items))
        while index == self.last_index and len(self._items) > 1:
            index = self._rng.randrange(len(self._items))
        self.last_index = index
        return self._items[index]
