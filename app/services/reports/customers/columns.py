from typing import Dict

from sqlalchemy import Float, cast, func
from sqlalchemy.sql.elements import ColumnElement

from app.db.models.customer_lookup import CustomerLookup
from app.db.models.order_stats import OrderStats

# "first last", skipping whichever part is missing
full_name = func.trim(
    func.coalesce(CustomerLookup.first_name, '') + ' ' + func.coalesce(CustomerLookup.last_name, '')
)

orders_count = func.count(OrderStats.order_id)
gross_sum = func.sum(OrderStats.gross_total)
total_spend = func.coalesce(gross_sum, 0)
# Customers without orders have an average of 0 rather than a division by zero
avg_order_value = func.coalesce(gross_sum / func.nullif(cast(orders_count, Float), 0), 0)
date_last_order = func.max(OrderStats.date_created)

REPORT_COLUMNS: Dict[str, ColumnElement] = {
    'customer_id': CustomerLookup.customer_id,
    'user_id': CustomerLookup.user_id,
    'username': CustomerLookup.username,
    'name': full_name,
    'email': CustomerLookup.email,
    'country': CustomerLookup.country,
    'city': CustomerLookup.city,
    'postcode': CustomerLookup.postcode,
    'date_registered': CustomerLookup.date_registered,
    'date_last_active': CustomerLookup.date_last_active,
    'date_last_order': date_last_order,
    'orders_count': orders_count,
    'total_spend': total_spend,
    'avg_order_value': avg_order_value,
}

INTEGER_COLUMNS = ('customer_id', 'user_id', 'orders_count')
FLOAT_COLUMNS = ('total_spend', 'avg_order_value')
