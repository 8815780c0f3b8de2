from fastapi import FastAPI
from feedbell.api.routes import settings as settings_routes
from feedbell.api.routes import cursors as cursors_routes
from feedbell.api.routes import system as system_routes

app = FastAPI(title="feedbell API", version="0.1.0")

app.include_router(settings_routes.router)
app.include_router(cursors_routes.router)
app.include_router(system_routes.router)

# Runtime injection proxy

def set_runtime(store, checks):
    cursors_routes.set_store(store)
    system_routes.set_checks(checks)
