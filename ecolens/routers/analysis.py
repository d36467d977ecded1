from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from ecolens.core.dependencies import get_classifier, get_geocoder, get_law_advisor
from ecolens.schemas.laws import LocalLawsRequest, LocalRules
from ecolens.schemas.verdict import ViolationVerdict
from ecolens.services.classifier import ViolationClassifier
from ecolens.services.geocoding import NominatimGeocoder
from ecolens.services.local_laws import LocalLawAdvisor

router = APIRouter(prefix="/analysis", tags=["Analysis"])

MAX_IMAGE_BYTES = 10 * 1024 * 1024


async def read_image(image: UploadFile) -> bytes:
    """Read an uploaded evidence image, enforcing the size limit."""
    data = await image.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Empty image upload")
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image exceeds {MAX_IMAGE_BYTES // (1024 * 1024)} MB"
        )
    return data


@router.post("/violation", response_model=ViolationVerdict)
async def analyze_violation(
        image: UploadFile = File(..., description="Photo of the suspected violation"),
        place: Optional[str] = Form(None, description="Administrative area name"),
        latitude: Optional[float] = Form(None),
        longitude: Optional[float] = Form(None),
        classifier: ViolationClassifier = Depends(get_classifier),
        geocoder: NominatimGeocoder = Depends(get_geocoder)
):
    """
    Classifies one image. The verdict is returned for display only; nothing
    is stored until the user files it through POST /reports.
    """
    data = await read_image(image)
    area = await geocoder.resolve_place(place, latitude, longitude)
    return await classifier.classify(data, image.content_type or "image/jpeg", area)


@router.post("/local-laws", response_model=LocalRules)
async def get_local_laws(
        body: LocalLawsRequest,
        advisor: LocalLawAdvisor = Depends(get_law_advisor)
):
    """Traffic and environmental rules enforced in a location, with typical fines."""
    return await advisor.fetch_rules(body.location)
