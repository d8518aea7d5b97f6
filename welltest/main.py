from fastapi import FastAPI

from welltest.core.config import settings
from welltest.routes import fitting, simulation

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API de curvas tipo y ajuste de pruebas de presión para pozos horizontales multifracturados en yacimientos compuestos de shale oil.",
    version=settings.VERSION
)

app.include_router(simulation.router)
app.include_router(fitting.router)

@app.get("/health", tags=["Infraestructura"])
async def health_check():
    return {"status": "online", "model": "composite-shale-multifractured-horizontal-well"}
