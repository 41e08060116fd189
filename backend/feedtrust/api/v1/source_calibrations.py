"""Source calibration endpoints (administrative pass-through)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from feedtrust.api.deps import get_source_calibrator
from feedtrust.schemas.source_calibration import SourceCalibrationListResponse, SourceCalibrationResponse
from feedtrust.services.source_calibrator import SourceCalibrator


router = APIRouter()


@router.get(
    "/{owner_id}/source-calibrations",
    response_model=SourceCalibrationListResponse,
    summary="List source calibrations for an owner",
)
def list_source_calibrations(
    owner_id: str,
    calibrator: SourceCalibrator = Depends(get_source_calibrator),
) -> SourceCalibrationListResponse:
    rows = calibrator.list_by_owner(owner_id)
    return SourceCalibrationListResponse(
        total=len(rows),
        items=[SourceCalibrationResponse.from_dto(r) for r in rows],
    )


@router.get(
    "/{owner_id}/source-calibrations/{source_id}",
    response_model=SourceCalibrationResponse,
    summary="Get a source calibration",
)
def get_source_calibration(
    owner_id: str,
    source_id: str,
    calibrator: SourceCalibrator = Depends(get_source_calibrator),
) -> SourceCalibrationResponse:
    row = calibrator.get(owner_id, source_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Calibration not found")
    return SourceCalibrationResponse.from_dto(row)


@router.post(
    "/{owner_id}/source-calibrations/{source_id}/reset",
    response_model=SourceCalibrationResponse,
    summary="Reset a source calibration",
)
def reset_source_calibration(
    owner_id: str,
    source_id: str,
    calibrator: SourceCalibrator = Depends(get_source_calibrator),
) -> SourceCalibrationResponse:
    row = calibrator.reset(owner_id, source_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Calibration not found")
    return SourceCalibrationResponse.from_dto(row)
