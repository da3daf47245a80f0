from fastapi import APIRouter

from trustteams.modules.academic import router as academic_router
from trustteams.modules.applications import router as applications_router
from trustteams.modules.auth import router as auth_router
from trustteams.modules.icm import router as icm_router
from trustteams.modules.opportunities import router as opportunities_router
from trustteams.modules.students import router as students_router
from trustteams.modules.universities import router as universities_router
from trustteams.modules.university_admin import router as university_admin_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(universities_router, prefix="/universities", tags=["Universities"])

api_router.include_router(opportunities_router, prefix="/opportunities", tags=["Opportunities"])

api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])

api_router.include_router(students_router, prefix="/student", tags=["Student Profile"])

api_router.include_router(academic_router, prefix="/academic", tags=["Academic Leader"])

api_router.include_router(
    university_admin_router,
    prefix="/university",
    tags=["University Admin"],
)

api_router.include_router(icm_router, prefix="/icm", tags=["ICM"])
