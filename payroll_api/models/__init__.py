# payroll_api/models/__init__.py
import importlib

# every module that declares tables; payroll/ re-exports its own models
MODEL_MODULES = (
    "payroll_api.models.user",
    "payroll_api.models.security",
    "payroll_api.models.employee",
    "payroll_api.models.attendance",
    "payroll_api.models.workflow",
    "payroll_api.models.payroll",
)


def load_all():
    """Import all model modules so db.metadata is complete (create_all, autogenerate)."""
    return [importlib.import_module(name) for name in MODEL_MODULES]
