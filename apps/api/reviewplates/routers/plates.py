from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from reviewplates.auth.access import PUBLIC_CAPABILITY
from reviewplates.db.session import get_db
from reviewplates.services.plates_service import get_plate_by_slug

router = APIRouter(tags=["plates"])


@router.get(
    "/p/{slug}",
    summary="Redirect an NFC plate to its Google review page",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
)
def plate_redirect(slug: str, db: Session = Depends(get_db)) -> RedirectResponse:
    plate = get_plate_by_slug(db, slug, capability=PUBLIC_CAPABILITY)
    if plate is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plate not found")
    return RedirectResponse(
        url=plate.google_review_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT
    )
