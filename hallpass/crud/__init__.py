# hallpass/crud/__init__.py

from .crud_check_in import check_in_crud
from .crud_classroom import classroom_crud
from .crud_destination import destination_crud
from .crud_waitlist_entry import waitlist_entry_crud, waitlist_event
