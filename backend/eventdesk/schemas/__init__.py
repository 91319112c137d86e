from eventdesk.schemas.participant import (
    ParticipantRegister, ParticipantUpdate, ParticipantLogin, ParticipantResponse, Token,
)
from eventdesk.schemas.event import EventCreate, EventUpdate, EventResponse, ScannerEvents
from eventdesk.schemas.checkin import ScanRequest, ScanResult
from eventdesk.schemas.seating import TableCreate, TableCapacityUpdate, SeatAssignmentRequest
from eventdesk.schemas.vehicle import VehicleCreate, VehicleAssignmentRequest

__all__ = [
    "ParticipantRegister", "ParticipantUpdate", "ParticipantLogin", "ParticipantResponse", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "ScannerEvents",
    "ScanRequest", "ScanResult",
    "TableCreate", "TableCapacityUpdate", "SeatAssignmentRequest",
    "VehicleCreate", "VehicleAssignmentRequest",
]
