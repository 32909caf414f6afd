"""pkgindex - 软件包元数据库与安装计划生成器"""

__version__ = "0.1.0"
