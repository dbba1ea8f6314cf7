# src/clinic_bff/resources.py
#
# Route tables for every upstream resource the dashboard talks to.
# Order matters inside a table: static segments must precede `{param}` routes.

import typing

from fastapi import APIRouter, Request

from .proxy import BodyMode, ProxyRoute, QueryParams, include_routes
from .schemas import ChatRequest, CreateUserRequest, RegisterRequest

JSON = BodyMode.JSON
OPTIONAL = BodyMode.OPTIONAL


def crud(resource: str, path: str) -> typing.List[ProxyRoute]:
    """List and create on a collection."""
    return [
        ProxyRoute(f"{resource}.list", "GET", path, path),
        ProxyRoute(f"{resource}.create", "POST", path, path, body=JSON),
    ]


def item(resource: str, path: str) -> typing.List[ProxyRoute]:
    item_path = f"{path}/{{id}}"
    return [
        ProxyRoute(f"{resource}.get", "GET", item_path, item_path),
        ProxyRoute(f"{resource}.update", "PATCH", item_path, item_path, body=JSON),
        ProxyRoute(f"{resource}.delete", "DELETE", item_path, item_path),
    ]


def doctor_candidates_query(request: Request) -> QueryParams:
    # Users who can be linked to a doctor profile: active users with the doctor role.
    params = [
        ("roleId", "doctor"),
        ("isActive", "true"),
        ("limit", "100"),
        ("sortBy", "name"),
        ("sortOrder", "asc"),
    ]
    search = request.query_params.get("search")
    if search:
        params.append(("search", search))
    return params


AUTH_ROUTES = [
    ProxyRoute("auth.register", "POST", "/auth/register", "/auth/register", body=JSON, schema=RegisterRequest),
    ProxyRoute("auth.profile", "GET", "/auth/profile", "/auth/profile"),
]

USER_ROUTES = [
    ProxyRoute("users.list", "GET", "/users", "/users"),
    ProxyRoute("users.create", "POST", "/users", "/users", body=JSON, schema=CreateUserRequest),
    ProxyRoute("users.stats", "GET", "/users/stats", "/users/stats"),
    ProxyRoute("users.recent", "GET", "/users/recent", "/users/recent"),
    # The dashboard posts to the misspelled path; the upstream spelling is authoritative.
    ProxyRoute("users.bulk_desactivate", "POST", "/users/bulk-desactivate", "/users/bulk-deactivate", body=JSON),
    ProxyRoute("users.bulk_deactivate", "POST", "/users/bulk-deactivate", "/users/bulk-deactivate", body=JSON),
    *item("users", "/users"),
    ProxyRoute("users.activate", "POST", "/users/{id}/activate", "/users/{id}/activate", body=OPTIONAL),
    ProxyRoute(
        "users.change_password", "PATCH",
        "/users/{id}/change-password", "/users/{id}/change-password",
        body=JSON,
    ),
]

ROLE_ROUTES = [
    *crud("roles", "/roles"),
    *item("roles", "/roles"),
    ProxyRoute("roles.activate", "PATCH", "/roles/{id}/activate", "/roles/{id}/activate", body=OPTIONAL),
    ProxyRoute("roles.deactivate", "PATCH", "/roles/{id}/deactivate", "/roles/{id}/deactivate", body=OPTIONAL),
]

PERMISSION_ROUTES = [
    ProxyRoute("permissions.list", "GET", "/permissions", "/permissions"),
]

DOCTOR_ROUTES = [
    *crud("doctors", "/doctors"),
    ProxyRoute("doctors.available_users", "GET", "/doctors/available-users", "/users", query=doctor_candidates_query),
    ProxyRoute("doctors.by_user", "GET", "/doctors/user/{userId}", "/doctors/user/{userId}"),
    *item("doctors", "/doctors"),
]

FLOOR_ROUTES = [
    *crud("floors", "/floors"),
    ProxyRoute("floors.stats", "GET", "/floors/stats", "/floors/stats"),
    ProxyRoute("floors.sections", "GET", "/floors/sections", "/floors/sections"),
    *item("floors", "/floors"),
    ProxyRoute("floors.activate", "PATCH", "/floors/{id}/activate", "/floors/{id}/activate", body=OPTIONAL),
]

OFFICE_ROUTES = [
    *crud("offices", "/offices"),
    ProxyRoute("offices.stats", "GET", "/offices/stats", "/offices/stats"),
    ProxyRoute("offices.by_floor", "GET", "/offices/floor/{floorId}", "/offices/floor/{floorId}"),
    ProxyRoute("offices.availability", "GET", "/offices/{id}/availability", "/offices/{id}/availability"),
    *item("offices", "/offices"),
]

DOCTOR_SCHEDULE_ROUTES = [
    *crud("doctor_schedules", "/doctor-schedules"),
    ProxyRoute(
        "doctor_schedules.stats_summary", "GET",
        "/doctor-schedules/stats/summary", "/doctor-schedules/stats/summary",
    ),
    ProxyRoute(
        "doctor_schedules.by_doctor_date", "GET",
        "/doctor-schedules/doctor/{doctorUserId}/date/{date}",
        "/doctor-schedules/doctor/{doctorUserId}/date/{date}",
    ),
    ProxyRoute(
        "doctor_schedules.by_office", "GET",
        "/doctor-schedules/office/{officeId}", "/doctor-schedules/office/{officeId}",
    ),
    *item("doctor_schedules", "/doctor-schedules"),
    ProxyRoute(
        "doctor_schedules.activate", "PATCH",
        "/doctor-schedules/{id}/activate", "/doctor-schedules/{id}/activate",
        body=OPTIONAL,
    ),
]

PATIENT_ROUTES = [
    *crud("patients", "/patients"),
    ProxyRoute("patients.stats", "GET", "/patients/stats", "/patients/stats"),
    ProxyRoute("patients.cities", "GET", "/patients/cities", "/patients/cities"),
    ProxyRoute("patients.states", "GET", "/patients/states", "/patients/states"),
    ProxyRoute("patients.search_ci", "GET", "/patients/search/ci/{ci}", "/patients/search/ci/{ci}"),
    *item("patients", "/patients"),
    ProxyRoute("patients.activate", "PATCH", "/patients/{id}/activate", "/patients/{id}/activate", body=OPTIONAL),
    ProxyRoute(
        "patients.add_medical_history", "POST",
        "/patients/{id}/medical-history", "/patients/{id}/medical-history",
        body=JSON,
    ),
]

MEDICAL_HISTORY_ROUTES = [
    *crud("medical_history", "/medical-history"),
    ProxyRoute("medical_history.stats", "GET", "/medical-history/stats", "/medical-history/stats"),
    ProxyRoute("medical_history.specialties", "GET", "/medical-history/specialties", "/medical-history/specialties"),
    ProxyRoute("medical_history.companies", "GET", "/medical-history/companies", "/medical-history/companies"),
    ProxyRoute(
        "medical_history.by_patient", "GET",
        "/medical-history/patient/{patientId}", "/medical-history/patient/{patientId}",
    ),
    *item("medical_history", "/medical-history"),
    ProxyRoute(
        "medical_history.activate", "PATCH",
        "/medical-history/{id}/activate", "/medical-history/{id}/activate",
        body=OPTIONAL,
    ),
]

CHATBOT_ROUTES = [
    *crud("chatbot_prompts", "/chatbot/prompts"),
    *item("chatbot_prompts", "/chatbot/prompts"),
    ProxyRoute(
        "chatbot.chat", "POST", "/chatbot/chat", "/chatbot/chat",
        body=JSON, schema=ChatRequest,
        validation_message="El campo 'message' es requerido",
    ),
]

RESOURCE_TABLES: typing.Dict[str, typing.List[ProxyRoute]] = {
    "auth": AUTH_ROUTES,
    "users": USER_ROUTES,
    "roles": ROLE_ROUTES,
    "permissions": PERMISSION_ROUTES,
    "doctors": DOCTOR_ROUTES,
    "floors": FLOOR_ROUTES,
    "offices": OFFICE_ROUTES,
    "doctor-schedules": DOCTOR_SCHEDULE_ROUTES,
    "patients": PATIENT_ROUTES,
    "medical-history": MEDICAL_HISTORY_ROUTES,
    "chatbot": CHATBOT_ROUTES,
}


def build_resource_router() -> APIRouter:
    router = APIRouter(prefix="/api")
    for tag, routes in RESOURCE_TABLES.items():
        include_routes(router, routes, tags=[tag])
    return router
