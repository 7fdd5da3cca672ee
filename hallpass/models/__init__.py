# hallpass/models/__init__.py
# Import all models to ensure SQLAlchemy can resolve relationships
# Order matters for dependencies - import base models first

from hallpass.db.base_class import Base
from hallpass.models.classroom import Classroom, ClassroomStudent
from hallpass.models.destination import Destination
from hallpass.models.check_in import CheckInRecord
from hallpass.models.waitlist_entry import WaitListEntry, WaitlistEvent
