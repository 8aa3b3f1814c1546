"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

HISTORY_CAPACITY = 4
BULK_BATCH_SIZE = 500
DEFAULT_ENTRY_STATUS = "Not Found"
DEFAULT_TOKEN_DAYS = 30
NOT_SET = "Not Set"

INITIAL_HISTORY_REMARKS = "Initial entry created"
PRODUCTS_UPDATED_REMARKS = "Products updated"
ASSIGNED_UPDATED_REMARKS = "Assigned users updated"
PERSON_MEET_UPDATED_REMARKS = "Person meet updated"

PERSON_MEET_FIELDS = (
    "first_person_meet",
    "second_person_meet",
    "third_person_meet",
    "fourth_person_meet",
)
