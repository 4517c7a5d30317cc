"""
api/routes/v1/company.py -- Company onboarding routes.

Routes:
  GET  /company/me     -- the workspace company record
  POST /company/setup  -- name the company and mark onboarding complete

The tracker store seeds a default "BuildTrack" company at startup with
companySetupComplete=false; the clients show the setup screen until
POST /company/setup flips it.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import CompanyOut, CompanyResponse, CompanySetupRequest
from auth.dependencies import require_auth
from tracker.models import Company
from tracker.store import TrackerStore

router = APIRouter(dependencies=[Depends(require_auth)])


@router.get("/company/me", response_model=CompanyResponse)
def get_company(request: Request) -> CompanyResponse:
    """Return the company record, or {"company": null} if none exists."""
    tracker: TrackerStore = request.app.state.tracker
    company = tracker.get_company()
    return CompanyResponse(company=_company_out(company) if company else None)


@router.post("/company/setup", response_model=CompanyResponse)
def setup_company(request: Request, body: CompanySetupRequest) -> JSONResponse:
    """Rename the company and mark setup complete.

    Returns 200 when an existing record was updated and 201 when the record
    had to be created.
    """
    tracker: TrackerStore = request.app.state.tracker
    company = tracker.get_company()
    status_code = 200
    if company is None:
        company_id = tracker.create_company(Company(name=body.name, company_setup_complete=True))
        status_code = 201
    else:
        company_id = company.id
        tracker.update_company(company_id, name=body.name, company_setup_complete=True)

    updated = Company(id=company_id, name=body.name, company_setup_complete=True)
    return JSONResponse(
        status_code=status_code,
        content=CompanyResponse(company=_company_out(updated)).model_dump(by_alias=True),
    )


def _company_out(company: Company) -> CompanyOut:
    return CompanyOut(
        id=company.id,
        name=company.name,
        company_setup_complete=company.company_setup_complete,
    )
