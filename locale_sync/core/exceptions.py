# locale_sync/core/exceptions.py
"""
本模块定义了 Locale-Sync 项目中所有自定义的、语义化的异常类型。

单条短语的翻译失败不会以异常形式出现，而是作为 `TranslateFailure` 值返回；
这里的异常只用于跨越组件边界的、需要调用方显式处理的错误。
"""


class LocaleSyncError(Exception):
    """
    所有 Locale-Sync 自定义异常的通用基类。
    捕获此异常可以处理所有源自本项目的预期错误。
    """

    pass


class ConfigurationError(LocaleSyncError):
    """
    表示在加载、解析或验证配置时发生的错误。
    例如，翻译服务地址缺失，或语言代码格式不正确。
    """

    pass


class StoreError(LocaleSyncError):
    """
    表示字典存储层（本地化 JSON 文件、快照文件）读写失败。
    通常是底层 I/O 或 JSON 解析异常的包装。
    """

    pass


class HistoryError(LocaleSyncError):
    """
    表示在持久化周期历史（WorkerResult）时发生的数据库错误。
    通常是底层 SQLAlchemy 异常的包装。
    """

    pass


class APIError(LocaleSyncError):
    """
    表示与外部机器翻译服务交互时发生的错误。
    例如，服务不可达、重试耗尽或服务返回无法解析的响应。
    """

    pass


class StageAbortedError(LocaleSyncError):
    """表示某个周期阶段的前置条件不满足，后续依赖它的阶段无法继续。"""

    pass
