"""Payment session: the single owner of form state, cache and renderer.

Flow for every refresh::

    validate inputs -> reconcile (edited field) -> write back -> validate triple
      -> encode payload -> cache lookup -> [miss] render off-loop -> cache insert

Only rendering leaves the event loop (``run_in_executor``); its result is
awaited back on the loop before the cache is touched, so the cache needs no
lock. A single in-flight flag serialises renders: while one is pending, a new
refresh reports ``pending`` instead of starting another, and the flag is
always cleared when the render returns or raises.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, List, Optional

from qrpay.core.errors import (
    AmountValidationError,
    InsufficientDataError,
    RenderFailure,
)
from qrpay.models.amounts import AmountTriple, EditedField
from qrpay.models.constants import (
    DEFAULT_CONTRACT_NUMBER,
    PRELOAD_AMOUNTS,
    PRELOAD_RATES,
)
from qrpay.models.payment import PaymentProfile, QRFormat
from qrpay.services.cache import CacheKey, CacheStatistics, PayloadCache, make_cache_key
from qrpay.services.encoder import build_purpose, encode_payload
from qrpay.services.money import to_minor_units, whole_units
from qrpay.services.preferences import PreferencesStore, StoredPreferences
from qrpay.services.reconciliation import reconcile
from qrpay.services.rendering import RenderedArtifact, Renderer, make_renderer
from qrpay.services.validation import ensure_valid, ensure_valid_triple

if TYPE_CHECKING:  # pragma: no cover
    from qrpay.core.config import Settings

logger = logging.getLogger("qrpay.session")

STATUS_EMPTY = "empty"
STATUS_READY = "ready"
STATUS_PENDING = "pending"
STATUS_INVALID = "invalid"
STATUS_INSUFFICIENT = "insufficient"
STATUS_RENDER_FAILED = "render_failed"


@dataclass
class PaymentFields:
    rate: Optional[float] = None
    amount_a: Optional[float] = None
    amount_b: Optional[float] = None
    contract_enabled: bool = False
    contract_number: str = DEFAULT_CONTRACT_NUMBER


@dataclass(frozen=True)
class DisplayState:
    status: str = STATUS_EMPTY
    caption: Optional[str] = None
    payload: Optional[str] = None
    artifact: Optional[RenderedArtifact] = None
    errors: List[str] = field(default_factory=list)


def render_labels(triple: AmountTriple) -> tuple:
    """Labels printed on the image, derived only from what the cache key holds."""
    minor_a = to_minor_units(triple.amount_a)
    minor_b = to_minor_units(triple.amount_b)
    top = f"{whole_units(minor_a)} rmb / {whole_units(minor_b)} rub"
    # Sub-kopeck RMB amounts have no meaningful rate at key precision
    bottom = f"Rate: {minor_b / minor_a:.2f}" if minor_a else "Rate: -"
    return top, bottom


def caption_for(triple: AmountTriple) -> str:
    return f"{triple.amount_a:.2f} rmb / {triple.amount_b:.2f} rub"


class PaymentSession:
    def __init__(
        self,
        profile: PaymentProfile,
        renderer: Renderer,
        cache: PayloadCache[RenderedArtifact],
        store: Optional[PreferencesStore] = None,
    ):
        self._profile = profile
        self._renderer = renderer
        self._cache = cache
        self._store = store
        self._fields = PaymentFields()
        self._last_edited = EditedField.NONE
        self._format = QRFormat.FAST_PAYMENT
        self._display = DisplayState()
        self._generating = False
        self._preloading = False

    # Startup ----------------------------------------------------------
    def restore(self, stored: StoredPreferences) -> None:
        """Seed inputs and counters from persisted state (startup only)."""
        self._fields = PaymentFields(
            rate=stored.rate,
            amount_a=stored.amount_a,
            amount_b=stored.amount_b,
            contract_enabled=stored.contract_enabled,
            contract_number=stored.contract_number,
        )
        self._cache.restore_counters(stored.cache_hits, stored.cache_misses)

    # Read-only views ----------------------------------------------------
    @property
    def fields(self) -> PaymentFields:
        return replace(self._fields)

    @property
    def last_edited(self) -> EditedField:
        return self._last_edited

    @property
    def format(self) -> QRFormat:
        return self._format

    @property
    def display(self) -> DisplayState:
        return self._display

    @property
    def generating(self) -> bool:
        return self._generating

    @property
    def cache(self) -> PayloadCache[RenderedArtifact]:
        return self._cache

    def statistics(self) -> CacheStatistics:
        return self._cache.statistics()

    # User actions -------------------------------------------------------
    async def edit(self, edited: EditedField, value: Optional[float]) -> DisplayState:
        if edited is EditedField.NONE:
            raise ValueError("edit requires a concrete field")
        setattr(self._fields, edited.value, value)
        self._last_edited = edited
        self._persist_fields()
        return await self.refresh()

    async def set_contract(self, enabled: bool, number: str) -> DisplayState:
        self._fields.contract_enabled = enabled
        self._fields.contract_number = number
        self._persist_fields()
        return await self.refresh()

    async def cycle_format(self) -> DisplayState:
        self._format = self._format.next()
        logger.info("qr format changed", extra={"fields": {"format": self._format.value}})
        return await self.refresh()

    def clear_cache(self) -> None:
        self._cache.clear()

    # Core flow ----------------------------------------------------------
    def _resolve(self) -> AmountTriple:
        f = self._fields
        ensure_valid(f.rate, f.amount_a, f.amount_b, require_amount=False)
        triple = reconcile(self._last_edited, f.rate, f.amount_a, f.amount_b)
        ensure_valid_triple(triple)
        return triple

    def _write_back(self, triple: AmountTriple) -> None:
        # Programmatic write: the edit tracker is left untouched
        changed = (
            self._fields.rate != triple.rate
            or self._fields.amount_a != triple.amount_a
            or self._fields.amount_b != triple.amount_b
        )
        self._fields.rate = triple.rate
        self._fields.amount_a = triple.amount_a
        self._fields.amount_b = triple.amount_b
        if changed:
            self._persist_fields()

    def _key_for(self, triple: AmountTriple, fmt: QRFormat) -> CacheKey:
        f = self._fields
        return make_cache_key(triple, fmt, f.contract_number if f.contract_enabled else "")

    def _payload_for(self, triple: AmountTriple, fmt: QRFormat) -> str:
        purpose = build_purpose(
            triple.amount_a, self._fields.contract_enabled, self._fields.contract_number
        )
        return encode_payload(triple, self._profile, purpose, fmt)

    async def refresh(self) -> DisplayState:
        f = self._fields
        if f.rate is None and f.amount_a is None and f.amount_b is None:
            return self._set_display(DisplayState())
        try:
            triple = self._resolve()
        except AmountValidationError as e:
            return self._set_display(DisplayState(status=STATUS_INVALID, errors=e.errors))
        except InsufficientDataError as e:
            return self._set_display(
                DisplayState(status=STATUS_INSUFFICIENT, errors=[str(e)])
            )

        self._write_back(triple)
        payload = self._payload_for(triple, self._format)
        if not payload:
            return self._set_display(DisplayState(status=STATUS_INSUFFICIENT))
        caption = caption_for(triple)
        key = self._key_for(triple, self._format)

        if self._generating:
            logger.debug("render already in flight, skipping")
            return replace(self._display, status=STATUS_PENDING)

        cached = self._cache.lookup(key)
        if cached is not None:
            return self._set_display(
                DisplayState(
                    status=STATUS_READY, caption=caption, payload=payload, artifact=cached
                )
            )

        self._generating = True
        try:
            artifact = await self._render(payload, triple)
        except RenderFailure as e:
            logger.warning("render failed: %s", e)
            return self._set_display(
                DisplayState(status=STATUS_RENDER_FAILED, caption=caption, errors=[str(e)])
            )
        finally:
            self._generating = False

        self._cache.insert(key, artifact, artifact.size_bytes)
        if self._current_key() != key:
            # Inputs moved on while rendering; keep this image cached and
            # catch up with the latest inputs
            return await self.refresh()
        return self._set_display(
            DisplayState(
                status=STATUS_READY, caption=caption, payload=payload, artifact=artifact
            )
        )

    async def _render(self, payload: str, triple: AmountTriple) -> RenderedArtifact:
        top, bottom = render_labels(triple)
        loop = asyncio.get_running_loop()
        try:
            artifact = await loop.run_in_executor(
                None, self._renderer.render, payload, top, bottom
            )
        except Exception as e:
            raise RenderFailure(f"renderer raised {type(e).__name__}: {e}") from e
        if artifact is None:
            raise RenderFailure("renderer returned no image")
        return artifact

    def _current_key(self) -> Optional[CacheKey]:
        f = self._fields
        try:
            triple = reconcile(self._last_edited, f.rate, f.amount_a, f.amount_b)
        except InsufficientDataError:
            return None
        return self._key_for(triple, self._format)

    def _set_display(self, state: DisplayState) -> DisplayState:
        self._display = state
        return state

    def _persist_fields(self) -> None:
        if self._store is None:
            return
        f = self._fields
        self._store.save_fields(
            f.rate, f.amount_a, f.amount_b, f.contract_enabled, f.contract_number
        )

    # Maintenance ---------------------------------------------------------
    async def preload_common(self) -> int:
        """Render the common rate x amount grid for the current format.

        Entries already cached are skipped; lookups here do not count as
        hits or misses. Returns the number of images added.
        """
        if self._preloading:
            logger.info("preload already running")
            return 0
        self._preloading = True
        fmt = self._format
        added = 0
        logger.info("preload started", extra={"fields": {"format": fmt.value}})
        try:
            for rate in PRELOAD_RATES:
                for amount in PRELOAD_AMOUNTS:
                    triple = AmountTriple(rate=rate, amount_a=amount, amount_b=amount * rate)
                    key = self._key_for(triple, fmt)
                    if key in self._cache:
                        continue
                    try:
                        artifact = await self._render(self._payload_for(triple, fmt), triple)
                    except RenderFailure as e:
                        logger.warning("preload render failed: %s", e)
                        continue
                    self._cache.insert(key, artifact, artifact.size_bytes)
                    added += 1
        finally:
            self._preloading = False
        logger.info(
            "preload finished",
            extra={"fields": {"added": added, "count": len(self._cache)}},
        )
        return added


def build_payment_session(
    settings: "Settings",
    store: Optional[PreferencesStore] = None,
    renderer: Optional[Renderer] = None,
) -> PaymentSession:
    """Wire a session from settings: renderer, bounded cache, preference store."""
    session = PaymentSession(
        profile=settings.payment_profile(),
        renderer=renderer or make_renderer(settings.renderer),
        cache=PayloadCache(settings.effective_cache_capacity),
        store=store,
    )
    if store is not None:
        session.restore(store.load())
    return session
