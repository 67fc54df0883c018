# shopbati/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .logger import logger, setup_logger
from .routes import invoices, orders
from .settings import settings

app = FastAPI(title="ShopBati API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(orders.router)
app.include_router(invoices.router)

@app.get("/")
def root():
    return {"message": "ShopBati API is running"}

@app.get("/health")
def health():
    return {"status": "ok"}

@app.on_event("startup")
def _startup_logging():
    setup_logger(settings.log_level, settings.log_file)
    logger.info(f"ShopBati API started (orders collection: {settings.orders_collection})")
