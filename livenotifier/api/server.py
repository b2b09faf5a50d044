from fastapi import FastAPI
from livenotifier.api.routes import platforms as platforms_routes
from livenotifier.api.routes import state as state_routes
from livenotifier.api.routes import system as system_routes

app = FastAPI(title="livenotifier API", version="0.1.0")

app.include_router(state_routes.router)
app.include_router(platforms_routes.router)
app.include_router(system_routes.router)

# Service injection proxies

def set_store(store):
    state_routes.set_store(store)


def set_pollers(pollers):
    platforms_routes.set_pollers(pollers)
