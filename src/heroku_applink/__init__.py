from importlib.metadata import PackageNotFoundError, version

try:
    dist_name = "heroku-applink"
    __version__ = version(dist_name)
except PackageNotFoundError:  # pragma: no cover
    __version__ = "unknown"
finally:
    del version, PackageNotFoundError

from .auth import AuthorizationClient, get_authorization  # noqa: E402
from .bulk_api import (  # noqa: E402
    BulkApi,
    IngestJobReference,
    IngestResult,
    JobKind,
    QueryJobReference,
    QueryJobResults,
)
from .config import AddonConfig  # noqa: E402
from .data_api import DataApi  # noqa: E402
from .data_cloud_api import DataCloudApi  # noqa: E402
from .datatable import DataTable, DataTableBuilder, split_data_table  # noqa: E402
from .exceptions import (  # noqa: E402
    ApiError,
    ApplinkError,
    AuthorizationError,
    CompositeRequestError,
    ConfigurationError,
    OperationCancelled,
)
from .org import Org, User  # noqa: E402
from .schemas import DataCloudQueryResponse, DataCloudUpsertResponse  # noqa: E402
from .records import (  # noqa: E402
    QueriedRecord,
    RecordForCreate,
    RecordForUpdate,
    RecordModificationResult,
    RecordQueryResult,
)
from .unit_of_work import ReferenceId, UnitOfWork  # noqa: E402

__all__ = [
    "AddonConfig",
    "ApiError",
    "ApplinkError",
    "AuthorizationClient",
    "AuthorizationError",
    "BulkApi",
    "CompositeRequestError",
    "ConfigurationError",
    "DataApi",
    "DataCloudApi",
    "DataCloudQueryResponse",
    "DataCloudUpsertResponse",
    "DataTable",
    "DataTableBuilder",
    "IngestJobReference",
    "IngestResult",
    "JobKind",
    "OperationCancelled",
    "Org",
    "QueriedRecord",
    "QueryJobReference",
    "QueryJobResults",
    "RecordForCreate",
    "RecordForUpdate",
    "RecordModificationResult",
    "RecordQueryResult",
    "ReferenceId",
    "UnitOfWork",
    "User",
    "get_authorization",
    "split_data_table",
]
