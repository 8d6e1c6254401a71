"""项目内使用的自定义异常定义。"""


class ClimageprocError(Exception):
    """基础异常类型。"""


class UsageError(ClimageprocError):
    """命令行参数或配置不合法时抛出。"""


class UnsupportedFormatError(UsageError):
    """无法识别的图片格式名称。"""


class InvalidPathError(ClimageprocError):
    """输入路径不存在或不可读。"""


class TransformError(ClimageprocError):
    """单个文件处理失败，不会中断整个批次。"""

    status = "error-transform"
