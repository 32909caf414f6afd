"""统一异常体系

所有业务异常继承 PkgIndexError，替代散落的 ValueError / RuntimeError。
Web 层可据此自动映射 HTTP 状态码，CLI 层可据此输出友好提示。

解析相关异常的恢复语义:
  - PackageNotFoundError: 可恢复，依赖组内换下一个候选继续尝试
  - 其余异常: 致命，整个安装计划构建中止
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from pkgindex.core.models import PackageName


class PkgIndexError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(PkgIndexError):
    """配置文件缺失、清单无效或注册信息有误"""

    code = "CONFIG_ERROR"


class ScriptNotFoundError(ConfigError):
    """请求的构建脚本未注册"""

    code = "SCRIPT_NOT_FOUND"

    def __init__(self, name: str) -> None:
        super().__init__(f"未注册构建脚本拉取器: {name}")
        self.name = name


class ValidationError(PkgIndexError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"


class FetchError(PkgIndexError):
    """仓库拉取失败（网络、解析或回调返回值无效）"""

    code = "FETCH_ERROR"

    def __init__(self, fetcher: str, cause: BaseException | str) -> None:
        super().__init__(f"加载失败 {fetcher}: {cause}")
        self.fetcher = fetcher
        self.cause = cause


class ResolutionError(PkgIndexError):
    """安装计划解析失败"""

    code = "RESOLUTION_ERROR"


class PackageNotFoundError(ResolutionError):
    """查询未匹配到任何软件包"""

    code = "PACKAGE_NOT_FOUND"

    def __init__(self, query: PackageName) -> None:
        super().__init__(f"软件包 {query} 不存在")
        self.query = query


class AmbiguousPackageError(ResolutionError):
    """查询要求唯一结果但匹配到多个软件包"""

    code = "AMBIGUOUS_PACKAGE"

    def __init__(self, query: PackageName, count: int) -> None:
        super().__init__(f"软件包 {query} 匹配到 {count} 个结果，无法确定唯一候选")
        self.query = query
        self.count = count


class NoCandidateError(ResolutionError):
    """依赖组内全部候选都不可用"""

    code = "NO_CANDIDATE"

    def __init__(self, options: Sequence[Any]) -> None:
        names = ", ".join(str(o) for o in options)
        super().__init__(f"候选项中找不到可安装的软件包: [{names}]")
        self.options = list(options)
