from eventdesk.models.reference import Country, ParticipantType
from eventdesk.models.participant import Participant
from eventdesk.models.event import Event, EventJoin
from eventdesk.models.attendance import AttendanceRecord
from eventdesk.models.seating import SeatingTable, SeatAssignment
from eventdesk.models.vehicle import TransportVehicle, VehicleAssignment
from eventdesk.models.feedback import Feedback, AssignmentNotificationLog

__all__ = [
    "Country",
    "ParticipantType",
    "Participant",
    "Event",
    "EventJoin",
    "AttendanceRecord",
    "SeatingTable",
    "SeatAssignment",
    "TransportVehicle",
    "VehicleAssignment",
    "Feedback",
    "AssignmentNotificationLog",
]
