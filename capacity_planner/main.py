import logging
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI, Depends, HTTPException, Query, Path, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
from sqlalchemy.orm import Session
from starlette import status

from capacity_planner.core.db import engine, get_db
from capacity_planner.core.logging_config import configure_logging
from capacity_planner.core.settings import config_settings
# ORM modules are imported so their tables are registered on Base.metadata
from capacity_planner.models.orm.assignment import AssignmentORM  # noqa: F401
from capacity_planner.models.orm.base import Base
from capacity_planner.models.orm.engineer import EngineerORM, Seniority  # noqa: F401
from capacity_planner.models.orm.project import ProjectORM, ProjectStatus  # noqa: F401
from capacity_planner.models.schemas.assignment import (
    AssignmentCreateModel,
    AssignmentResponseModel,
    AssignmentUpdateModel,
)
from capacity_planner.models.schemas.capacity import (
    AvailabilityResponseModel,
    EngineerCapacityModel,
)
from capacity_planner.models.schemas.engineer import (
    EngineerCreateModel,
    EngineerResponseModel,
    EngineerUpdateModel,
)
from capacity_planner.models.schemas.project import (
    ProjectCreateModel,
    ProjectDetailResponseModel,
    ProjectResponseModel,
    ProjectUpdateModel,
)
from capacity_planner.services.assignment_service import AssignmentService
from capacity_planner.services.capacity_allocator import (
    InvalidPercentageError,
    InvalidRangeError,
)
from capacity_planner.services.engineer_service import EngineerService
from capacity_planner.services.project_service import ProjectService

configure_logging(config_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Capacity planner started")
    yield


app = FastAPI(
    title="Capacity planner",
    description="Engineers, projects and capacity-checked assignments",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config_settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidRangeError)
@app.exception_handler(InvalidPercentageError)
async def invalid_input_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


def _split_skills(skills: str) -> list[str]:
    return [skill.strip() for skill in skills.split(",") if skill.strip()]


# --- Engineers ---


@app.post(
    "/engineers",
    response_model=EngineerResponseModel,
    status_code=status.HTTP_201_CREATED,
)
def post_engineers(engineer_data: EngineerCreateModel, db: Session = Depends(get_db)):
    return EngineerService(db).create_engineer(engineer_data)


@app.get("/engineers", response_model=list[EngineerResponseModel])
def get_engineers(
    skills: list[str] | None = Query(None),
    seniority: Seniority | None = Query(None),
    db: Session = Depends(get_db),
):
    return EngineerService(db).list_engineers(skills=skills, seniority=seniority)


@app.get(
    "/engineers/search/skills",
    response_model=list[EngineerResponseModel],
    summary="Engineers having any of a comma separated list of skills",
)
def search_engineers_by_skills(skills: str | None = Query(None), db: Session = Depends(get_db)):
    if not skills or not _split_skills(skills):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Skills parameter is required",
        )
    return EngineerService(db).list_engineers(skills=_split_skills(skills))


@app.get("/engineers/{engineer_id}", response_model=EngineerResponseModel)
def get_engineer(
    engineer_id: str = Path(..., description="The ID of the engineer."),
    db: Session = Depends(get_db),
):
    return EngineerService(db).get_engineer(engineer_id)


@app.patch("/engineers/{engineer_id}", response_model=EngineerResponseModel)
def patch_engineer(
    engineer_id: str, update_data: EngineerUpdateModel, db: Session = Depends(get_db)
):
    return EngineerService(db).update_engineer(engineer_id, update_data)


@app.get("/engineers/{engineer_id}/assignments", response_model=list[AssignmentResponseModel])
def get_engineer_assignments(engineer_id: str, db: Session = Depends(get_db)):
    return EngineerService(db).get_engineer_assignments(engineer_id)


@app.get(
    "/engineers/{engineer_id}/availability",
    response_model=AvailabilityResponseModel,
    summary="Day-by-day allocation of an engineer over a date window",
)
def get_engineer_availability(
    engineer_id: str,
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
):
    return EngineerService(db).check_availability(engineer_id, start_date, end_date)


@app.get("/engineers/{engineer_id}/capacity", response_model=EngineerCapacityModel)
def get_engineer_capacity(
    engineer_id: str,
    as_of: date | None = Query(None, description="Any day of the month to summarise."),
    db: Session = Depends(get_db),
):
    return EngineerService(db).get_capacity(engineer_id, as_of)


# --- Projects ---


@app.post(
    "/projects",
    response_model=ProjectResponseModel,
    status_code=status.HTTP_201_CREATED,
)
def post_projects(project_data: ProjectCreateModel, db: Session = Depends(get_db)):
    return ProjectService(db).create_project(project_data)


@app.get("/projects", response_model=list[ProjectResponseModel])
def get_projects(
    status_filter: ProjectStatus | None = Query(None, alias="status"),
    skills: list[str] | None = Query(None),
    manager_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    filter_params = {
        "status": status_filter,
        "skills": skills,
        "manager_id": manager_id,
    }
    return ProjectService(db).list_projects(filter_params)


@app.get("/projects/search/skills", response_model=list[ProjectResponseModel])
def search_projects_by_skills(skills: str | None = Query(None), db: Session = Depends(get_db)):
    if not skills or not _split_skills(skills):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Skills parameter is required",
        )
    return ProjectService(db).list_projects({"skills": _split_skills(skills)})


@app.get("/projects/{project_id}", response_model=ProjectDetailResponseModel)
def get_project(project_id: str, db: Session = Depends(get_db)):
    return ProjectService(db).get_project(project_id)


@app.patch("/projects/{project_id}", response_model=ProjectResponseModel)
def patch_project(project_id: str, update_data: ProjectUpdateModel, db: Session = Depends(get_db)):
    return ProjectService(db).update_project(project_id, update_data)


@app.delete("/projects/{project_id}", status_code=status.HTTP_200_OK)
def delete_project(project_id: str, db: Session = Depends(get_db)):
    ProjectService(db).delete_project(project_id)
    return {"message": "Project deleted successfully"}


# --- Assignments ---


@app.post(
    "/assignments",
    response_model=AssignmentResponseModel,
    status_code=status.HTTP_201_CREATED,
    summary="Assign an engineer to a project, if capacity allows",
)
def post_assignments(assignment_data: AssignmentCreateModel, db: Session = Depends(get_db)):
    """
    Rejected with 409 and the per-day breakdown when any day of the
    assignment would take the engineer above 100%.
    """
    return AssignmentService(db).create_assignment(assignment_data)


@app.get("/assignments", response_model=list[AssignmentResponseModel])
def get_assignments(
    project_id: str | None = Query(None),
    engineer_id: str | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: Session = Depends(get_db),
):
    filter_params = {
        "project_id": project_id,
        "engineer_id": engineer_id,
        "start_date": start_date,
        "end_date": end_date,
    }
    return AssignmentService(db).list_assignments(filter_params)


@app.get("/assignments/{assignment_id}", response_model=AssignmentResponseModel)
def get_assignment(assignment_id: str, db: Session = Depends(get_db)):
    return AssignmentService(db).get_assignment(assignment_id)


@app.patch("/assignments/{assignment_id}", response_model=AssignmentResponseModel)
def patch_assignment(
    assignment_id: str, update_data: AssignmentUpdateModel, db: Session = Depends(get_db)
):
    return AssignmentService(db).update_assignment(assignment_id, update_data)


@app.delete("/assignments/{assignment_id}", status_code=status.HTTP_200_OK)
def delete_assignment(assignment_id: str, db: Session = Depends(get_db)):
    AssignmentService(db).delete_assignment(assignment_id)
    return {"message": "Assignment deleted successfully"}


# Entry point for running the application directly during local development
if __name__ == "__main__":
    uvicorn.run("capacity_planner.main:app", host="0.0.0.0", port=8000, reload=True)
