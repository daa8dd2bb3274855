"""HTTP API exposing the aggregation controller's published state."""

import hmac
from dataclasses import asdict
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel

from .config import settings
from .controller import AggregationController, PipelineState
from .domain import (
    AlignedHour,
    HistoricalWindow,
    LoadState,
    Location,
    PollutionSample,
    View,
    WeatherSnapshot,
)
from .errors import ErrorKind
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="weatherpulse/api")


def require_api_key(x_api_key: str | None = Header(default=None)):
    """Validate the X-API-Key header against the configured key, if any."""
    if not settings.api_key:
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])

# One controller per process; built lazily so importing the module does no I/O.
CONTROLLER: AggregationController | None = None


def get_controller() -> AggregationController:
    """Return the process-wide controller, creating it on first use."""
    global CONTROLLER
    if CONTROLLER is None:
        CONTROLLER = AggregationController()
    return CONTROLLER


class LocationModel(BaseModel):
    latitude: float
    longitude: float
    display_name: str


class SnapshotModel(BaseModel):
    """Serialized weather reading used in API responses."""
    timestamp: datetime
    temperature_c: float
    humidity_pct: float
    pressure_hpa: float
    pressure_gauge_pct: float
    wind_speed_ms: float
    condition_code: int
    description: str
    sunrise: Optional[datetime] = None
    sunset: Optional[datetime] = None
    time_text: Optional[str] = None
    feels_like_c: Optional[float] = None
    icon: Optional[str] = None


class PollutionModel(BaseModel):
    timestamp: datetime
    aqi: int
    aqi_label: str
    components: Dict[str, float]


class AlignedHourModel(BaseModel):
    forecast: SnapshotModel
    pollution: Optional[PollutionModel] = None


class HistoryModel(BaseModel):
    location: str
    country_code: str
    start_epoch: int
    end_epoch: int
    samples: list[SnapshotModel]


class StateResponse(BaseModel):
    """Everything a consumer needs to draw the current screen."""
    epoch: int
    status: LoadState
    view: View
    location: Optional[LocationModel] = None
    current: Optional[SnapshotModel] = None
    hourly: list[SnapshotModel] = []
    daily: list[SnapshotModel] = []
    pollution: Optional[list[PollutionModel]] = None
    pollution_status: LoadState
    pollution_error: Optional[str] = None
    history: Optional[HistoryModel] = None
    history_status: LoadState
    history_error: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


class SearchRequest(BaseModel):
    """City search; blank input is reported in the state, not rejected here."""
    city: str = ""


class LocateRequest(BaseModel):
    latitude: float
    longitude: float


class GeolocationErrorRequest(BaseModel):
    reason: Optional[str] = None


class ViewRequest(BaseModel):
    view: View


class HistoryRequest(BaseModel):
    city: Optional[str] = None
    country_code: Optional[str] = None
    date: Optional[str] = None


def _location_model(location: Optional[Location]) -> Optional[LocationModel]:
    if location is None:
        return None
    return LocationModel(**asdict(location))


def _snapshot_model(snapshot: WeatherSnapshot) -> SnapshotModel:
    return SnapshotModel(**asdict(snapshot), pressure_gauge_pct=snapshot.pressure_gauge_pct)


def _pollution_model(sample: PollutionSample) -> PollutionModel:
    return PollutionModel(
        timestamp=sample.timestamp,
        aqi=sample.aqi,
        aqi_label=sample.aqi_label,
        components=asdict(sample.components),
    )


def _history_model(window: Optional[HistoricalWindow]) -> Optional[HistoryModel]:
    if window is None:
        return None
    return HistoryModel(
        location=window.location,
        country_code=window.country_code,
        start_epoch=window.start_epoch,
        end_epoch=window.end_epoch,
        samples=[_snapshot_model(s) for s in window.samples],
    )


def _aligned_model(hour: AlignedHour) -> AlignedHourModel:
    return AlignedHourModel(
        forecast=_snapshot_model(hour.forecast),
        pollution=_pollution_model(hour.pollution) if hour.pollution else None,
    )


def _state_response(state: PipelineState) -> StateResponse:
    """Convert the controller's published state into the API shape."""
    return StateResponse(
        epoch=state.epoch,
        status=state.status,
        view=state.view,
        location=_location_model(state.location),
        current=_snapshot_model(state.snapshot) if state.snapshot else None,
        hourly=[_snapshot_model(s) for s in state.hourly()],
        daily=[_snapshot_model(s) for s in state.daily()],
        pollution=[_pollution_model(p) for p in state.pollution] if state.pollution is not None else None,
        pollution_status=state.pollution_status,
        pollution_error=state.pollution_error,
        history=_history_model(state.history),
        history_status=state.history_status,
        history_error=state.history_error,
        error=state.error,
        error_kind=state.error_kind,
    )


@router.get("/state", response_model=StateResponse)
async def get_state():
    """Return the currently published state without triggering any fetch."""
    return _state_response(get_controller().state)


@router.post("/start", response_model=StateResponse)
async def start():
    """Load the default city if nothing has been selected yet."""
    return _state_response(await get_controller().start())


@router.post("/search", response_model=StateResponse)
async def search(req: SearchRequest):
    """Select a location by city name."""
    logger.info("Search requested", extra={"city": req.city})
    return _state_response(await get_controller().search(req.city))


@router.post("/locate", response_model=StateResponse)
async def locate(req: LocateRequest):
    """Select a location from device coordinates."""
    return _state_response(await get_controller().locate(req.latitude, req.longitude))


@router.post("/geolocation-error", response_model=StateResponse)
async def geolocation_error(req: GeolocationErrorRequest):
    """Report that the device could not provide a position."""
    return _state_response(await get_controller().geolocation_failed(req.reason))


@router.post("/refresh", response_model=StateResponse)
async def refresh():
    """Re-fetch everything for the active location."""
    return _state_response(await get_controller().refresh())


@router.post("/view", response_model=StateResponse)
async def select_view(req: ViewRequest):
    """Switch views; may fetch pollution data for the pollution view."""
    return _state_response(await get_controller().select_view(req.view))


@router.post("/history", response_model=StateResponse)
async def query_history(req: HistoryRequest):
    """Fetch hourly weather for one past day."""
    return _state_response(await get_controller().query_history(req.city, req.country_code, req.date))


@router.get("/forecast/hourly", response_model=list[SnapshotModel])
async def forecast_hourly(n: Optional[int] = Query(default=None, ge=0)):
    """Leading entries of the published forecast."""
    return [_snapshot_model(s) for s in get_controller().state.hourly(n)]


@router.get("/forecast/daily", response_model=list[SnapshotModel])
async def forecast_daily(anchor: Optional[str] = Query(default=None, pattern=r"^\d{2}:\d{2}:\d{2}$")):
    """One forecast entry per day at the anchor time."""
    return [_snapshot_model(s) for s in get_controller().state.daily(anchor)]


@router.get("/pollution/aligned", response_model=list[AlignedHourModel])
async def pollution_aligned():
    """Forecast entries paired with the nearest pollution sample by timestamp."""
    return [_aligned_model(h) for h in get_controller().state.pollution_by_hour()]
