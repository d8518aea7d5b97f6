import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Composite Shale Well-Test API")
    VERSION: str = os.getenv("VERSION", "1.0.0")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # --- Inversión de Stehfest ---
    # N=8 para la curva final, N=4 durante la búsqueda del ajuste
    STEHFEST_N: int = int(os.getenv("STEHFEST_N", "8"))
    FIT_STEHFEST_N: int = int(os.getenv("FIT_STEHFEST_N", "4"))

    # --- Grilla de tiempos por defecto (horas, décadas log10) ---
    DEFAULT_TIME_POINTS: int = int(os.getenv("DEFAULT_TIME_POINTS", "100"))
    DEFAULT_T_MIN_EXP: float = float(os.getenv("DEFAULT_T_MIN_EXP", "-3.0"))
    DEFAULT_T_MAX_EXP: float = float(os.getenv("DEFAULT_T_MAX_EXP", "3.0"))

    # --- Derivada de Bourdet (L-spacing en ln t) ---
    BOURDET_L_SPACING: float = float(os.getenv("BOURDET_L_SPACING", "0.1"))
    OBSERVED_L_SPACING: float = float(os.getenv("OBSERVED_L_SPACING", "0.15"))

    # --- Cuadratura adaptativa ---
    QUAD_EPS: float = float(os.getenv("QUAD_EPS", "1e-5"))
    QUAD_MAX_DEPTH: int = int(os.getenv("QUAD_MAX_DEPTH", "10"))

    # --- Levenberg-Marquardt ---
    FIT_MAX_ITER: int = int(os.getenv("FIT_MAX_ITER", "50"))
    FIT_MAX_TRIES: int = int(os.getenv("FIT_MAX_TRIES", "5"))
    FIT_INITIAL_LAMBDA: float = float(os.getenv("FIT_INITIAL_LAMBDA", "0.01"))
    FIT_MAX_LAMBDA: float = float(os.getenv("FIT_MAX_LAMBDA", "1e10"))
    FIT_MSE_TOLERANCE: float = float(os.getenv("FIT_MSE_TOLERANCE", "3e-3"))

    # Segundos que un ajuste permanece registrado en el servicio HTTP
    FIT_JOB_TTL: float = float(os.getenv("FIT_JOB_TTL", "3600"))

settings = Settings()
