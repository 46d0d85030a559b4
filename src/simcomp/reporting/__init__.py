from .reporter import ConsoleReporter, Reporter, TableReporter
from .table import TimeSeriesTable
