import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.customer_lookup import CustomerLookup
from app.schemas.customer import CustomerProfile, IdentityResolution, IdentityState, OrderPayload

logger = logging.getLogger(__name__)


class CustomerIdentityResolver:
    """Finds or records the customer_lookup row behind an order or a user profile.

    Registered customers are keyed by user_id. Guests have no user_id and are
    keyed by billing email; the guest email index only covers rows with a NULL
    user_id, so a guest and a registered customer may share an address.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_customer_by_user_id(self, user_id: int) -> Optional[CustomerLookup]:
        stmt = select(CustomerLookup).where(CustomerLookup.user_id == user_id).limit(1)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_customer_id_by_user_id(self, user_id: int) -> Optional[int]:
        stmt = select(CustomerLookup.customer_id).where(CustomerLookup.user_id == user_id).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar()

    async def get_guest_by_email(self, email: str) -> Optional[CustomerLookup]:
        stmt = select(CustomerLookup).where(
            CustomerLookup.email == email,
            CustomerLookup.user_id.is_(None)
        ).limit(1)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_customer_id_by_email(self, email: str) -> Optional[int]:
        """Guest customer id for the billing email, registered customers are ignored."""
        stmt = select(CustomerLookup.customer_id).where(
            CustomerLookup.email == email,
            CustomerLookup.user_id.is_(None)
        ).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar()

    async def get_customer_id_from_order(self, order: OrderPayload) -> Optional[int]:
        """Look up the customer of an order without creating one."""
        if order.user_id:
            return await self.get_customer_id_by_user_id(order.user_id)
        if not order.billing_email:
            return None
        return await self.get_customer_id_by_email(order.billing_email)

    async def resolve_order_customer(self, order: OrderPayload) -> IdentityResolution:
        """Resolve the customer of an order, creating a guest customer when needed.

        Registered users are never created here: their rows come from profile
        syncs, so a registered order without a row resolves to UNKNOWN.
        """
        if order.user_id:
            customer_id = await self.get_customer_id_by_user_id(order.user_id)
            if customer_id is None:
                logger.warning(f"No customer row for user {order.user_id} of order {order.order_id}")
                return IdentityResolution(state=IdentityState.UNKNOWN)
            return IdentityResolution(state=IdentityState.REGISTERED_MATCH, customer_id=customer_id)

        if not order.billing_email:
            return IdentityResolution(state=IdentityState.UNKNOWN)

        customer_id = await self.get_customer_id_by_email(order.billing_email)
        if customer_id is not None:
            return IdentityResolution(state=IdentityState.GUEST_MATCH, customer_id=customer_id)

        return await self._create_guest(order)

    async def get_or_create_guest_customer_from_order(self, order: OrderPayload) -> Optional[int]:
        if not order.billing_email:
            return None
        customer_id = await self.get_customer_id_by_email(order.billing_email)
        if customer_id is not None:
            return customer_id
        resolution = await self._create_guest(order)
        return resolution.customer_id

    async def _create_guest(self, order: OrderPayload) -> IdentityResolution:
        guest = CustomerLookup(
            first_name=order.billing_first_name,
            last_name=order.billing_last_name,
            email=order.billing_email,
            city=order.billing_city,
            postcode=order.billing_postcode,
            country=order.billing_country,
            date_last_active=order.date_created,
        )
        self.db.add(guest)
        try:
            await self.db.flush()
            customer_id = guest.customer_id
            await self.db.commit()
        except IntegrityError:
            # Another order created this guest between our lookup and insert
            await self.db.rollback()
            customer_id = await self.get_customer_id_by_email(order.billing_email)
            logger.info(f"Guest customer for order {order.order_id} was created concurrently, reusing {customer_id}")
            if customer_id is None:
                return IdentityResolution(state=IdentityState.UNKNOWN)
            return IdentityResolution(state=IdentityState.GUEST_MATCH, customer_id=customer_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Could not create guest customer for order {order.order_id}: {e}", exc_info=True)
            return IdentityResolution(state=IdentityState.UNKNOWN)

        logger.info(f"Created guest customer {customer_id} from order {order.order_id}")
        return IdentityResolution(state=IdentityState.NEW_GUEST, customer_id=customer_id)

    async def update_registered_customer(self, profile: CustomerProfile) -> Optional[int]:
        """Creates or updates the customer row of a registered user.

        An existing row keeps its customer_id, so report history stays attached
        to the same customer across profile updates.
        """
        customer = await self.get_customer_by_user_id(profile.user_id)
        if customer is None:
            customer = CustomerLookup(user_id=profile.user_id)
            self.db.add(customer)
        self._apply_profile(customer, profile)

        try:
            await self.db.flush()
            customer_id = customer.customer_id
            await self.db.commit()
        except IntegrityError:
            # Concurrent first sync of the same user, update the winner's row instead
            await self.db.rollback()
            customer = await self.get_customer_by_user_id(profile.user_id)
            if customer is None:
                raise
            self._apply_profile(customer, profile)
            await self.db.commit()
            customer_id = customer.customer_id

        logger.debug(f"Synced registered customer {customer_id} for user {profile.user_id}")
        return customer_id

    @staticmethod
    def _apply_profile(customer: CustomerLookup, profile: CustomerProfile) -> None:
        customer.username = profile.username
        customer.first_name = profile.first_name
        customer.last_name = profile.last_name
        customer.email = profile.email
        customer.city = profile.billing_city
        customer.postcode = profile.billing_postcode
        customer.country = profile.billing_country
        customer.date_registered = profile.date_created
        customer.date_last_active = profile.last_active
