class DataMinerError(Exception):
    exit_code = 1


class UsageError(DataMinerError):
    exit_code = 2


class ConfigError(DataMinerError):
    exit_code = 3


class AuthError(DataMinerError):
    exit_code = 4


class QueryError(DataMinerError):
    exit_code = 5


class ParseError(DataMinerError):
    exit_code = 6


class OutputError(DataMinerError):
    exit_code = 7
