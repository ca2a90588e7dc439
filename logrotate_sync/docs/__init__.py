"""
文档生成模块

功能:
- Markdown 主机报告
- JSON 结构化文档
"""

from logrotate_sync.docs.emitter import (
    DocumentationBundle,
    LogrotateDocument,
    emit,
    write_documentation,
)

__all__ = [
    'DocumentationBundle',
    'LogrotateDocument',
    'emit',
    'write_documentation',
]
