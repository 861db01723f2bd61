"""
Route Template Pydantic schemas.

Defines request and response models for preset route management.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class RouteStopIn(BaseModel):
    """An intermediate stop as entered by an admin."""
    name: str = Field(..., min_length=1, max_length=200)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    order: Optional[int] = Field(None, ge=0, description="Visiting order (defaults to list position)")


class RouteTemplateCreate(BaseModel):
    """Schema for creating a route template."""
    name: str = Field(..., min_length=1, max_length=200, description="Route name")
    description: Optional[str] = None
    
    start_name: str = Field(..., min_length=1, max_length=200)
    start_lat: float = Field(..., ge=-90, le=90)
    start_lng: float = Field(..., ge=-180, le=180)
    
    end_name: str = Field(..., min_length=1, max_length=200)
    end_lat: float = Field(..., ge=-90, le=90)
    end_lng: float = Field(..., ge=-180, le=180)
    
    stops: List[RouteStopIn] = Field(default_factory=list)
    estimated_time: Optional[str] = Field(None, max_length=50)
    fare: Optional[str] = Field(None, max_length=50)


class RouteTemplateUpdate(BaseModel):
    """Schema for updating a route template."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_name: Optional[str] = Field(None, min_length=1, max_length=200)
    start_lat: Optional[float] = Field(None, ge=-90, le=90)
    start_lng: Optional[float] = Field(None, ge=-180, le=180)
    end_name: Optional[str] = Field(None, min_length=1, max_length=200)
    end_lat: Optional[float] = Field(None, ge=-90, le=90)
    end_lng: Optional[float] = Field(None, ge=-180, le=180)
    stops: Optional[List[RouteStopIn]] = None
    estimated_time: Optional[str] = Field(None, max_length=50)
    fare: Optional[str] = Field(None, max_length=50)
    active: Optional[bool] = None


class StopPointResponse(BaseModel):
    name: str
    lat: float
    lng: float
    order: int


class SequenceStopResponse(BaseModel):
    """One point of the [start, ...stops, end] visiting sequence."""
    index: int
    id: str
    kind: str
    name: str
    lat: float
    lng: float
    order: Optional[int] = None


class RouteTemplateResponse(BaseModel):
    """
    Schema for route template response.
    
    `stops` is always the normalized list, whichever field the row stored
    them under; `stop_sequence` adds the start and end points.
    """
    id: int
    name: str
    description: Optional[str]
    start_name: str
    start_lat: float
    start_lng: float
    end_name: str
    end_lat: float
    end_lng: float
    stops: List[StopPointResponse]
    stop_sequence: List[SequenceStopResponse]
    total_stops: int
    estimated_time: Optional[str]
    fare: Optional[str]
    active: bool
    created_at: datetime
    updated_at: datetime


class RouteTemplateListResponse(BaseModel):
    routes: List[RouteTemplateResponse]
    total: int
