"""Turn decoded values into PostgreSQL tables."""
from .inference import infer_table_spec, sql_type_for
from .materializer import TableMaterializer

__all__ = ["TableMaterializer", "infer_table_spec", "sql_type_for"]
