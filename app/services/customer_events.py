import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from app.crud.customer_lookup import CustomerIdentityResolver
from app.crud.order_stats import create_or_update_order_stats
from app.schemas.customer import CustomerProfile, IdentityResolution, OrderPayload
from app.services.reports.cache import ReportCache
from app.services.reports.customers.data_store import CustomersReportDataStore

logger = logging.getLogger(__name__)

# User meta key holding the "last active" timestamp of a registered customer
LAST_ACTIVE_META_KEY = "wc_last_active"

Handler = Callable[..., Awaitable[Any]]


class CustomerEvent(str, Enum):
    NEW_CUSTOMER = "new_customer"
    CUSTOMER_UPDATED = "customer_updated"
    PROFILE_UPDATED = "profile_updated"
    USER_META_UPDATED = "user_meta_updated"
    ORDER_PLACED = "order_placed"


class EventDispatcher:
    """Delivers domain events to the handlers subscribed to them, in subscription order."""

    def __init__(self) -> None:
        self._handlers: Dict[CustomerEvent, List[Handler]] = defaultdict(list)

    def subscribe(self, event: CustomerEvent, handler: Handler) -> None:
        self._handlers[event].append(handler)

    def handlers(self, event: CustomerEvent) -> List[Handler]:
        return list(self._handlers.get(event, []))

    async def publish(self, event: CustomerEvent, **payload) -> List[Any]:
        results = []
        for handler in self.handlers(event):
            results.append(await handler(**payload))
        return results


class CustomerProfileSource(Protocol):
    """Account system lookup of registered user profiles."""

    async def get_profile(self, user_id: int) -> Optional[CustomerProfile]: ...


class CustomerLookupSync:
    """Keeps customer_lookup and order_stats current from profile and order events."""

    def __init__(self, session_factory, profile_source: CustomerProfileSource, cache: ReportCache):
        self.session_factory = session_factory
        self.profile_source = profile_source
        self.cache = cache

    async def on_profile_changed(self, user_id: int) -> Optional[int]:
        profile = await self.profile_source.get_profile(user_id)
        if profile is None or profile.user_id != user_id:
            logger.warning(f"No profile found for user {user_id}, skipping customer sync")
            return None

        async with self.session_factory() as db:
            customer_id = await CustomerIdentityResolver(db).update_registered_customer(profile)

        await self.cache.clear(CustomersReportDataStore.cache_namespace)
        return customer_id

    async def on_user_meta_updated(self, user_id: int, meta_key: str, meta_id: Optional[int] = None) -> Optional[int]:
        if meta_key != LAST_ACTIVE_META_KEY:
            return None
        return await self.on_profile_changed(user_id)

    async def on_order_placed(self, order: OrderPayload) -> IdentityResolution:
        async with self.session_factory() as db:
            resolution = await CustomerIdentityResolver(db).resolve_order_customer(order)
            await create_or_update_order_stats(db, order, resolution.customer_id)

        logger.info(
            f"Order {order.order_id} resolved to customer {resolution.customer_id} ({resolution.state.value})"
        )
        await self.cache.clear(CustomersReportDataStore.cache_namespace)
        return resolution

    def register(self, dispatcher: EventDispatcher) -> None:
        for event in (CustomerEvent.NEW_CUSTOMER, CustomerEvent.CUSTOMER_UPDATED, CustomerEvent.PROFILE_UPDATED):
            dispatcher.subscribe(event, self.on_profile_changed)
        dispatcher.subscribe(CustomerEvent.USER_META_UPDATED, self.on_user_meta_updated)
        dispatcher.subscribe(CustomerEvent.ORDER_PLACED, self.on_order_placed)
