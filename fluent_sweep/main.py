"""Fluent 多网格雷诺数批量计算入口。"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .case.journal import TemplateMissing
from .pipeline import CONFIG_PATH, BatchConfig, run_sweep
from .post.report import summarize_ledger_file
from .utils.config import ConfigError

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fluent 网格 × 雷诺数批量计算与收敛检查工具")
    parser.add_argument(
        "config",
        nargs="?",
        default=CONFIG_PATH,
        type=Path,
        help="配置文件路径 (默认: 包内 config.yaml)",
    )
    parser.add_argument(
        "--report-only",
        action="store_true",
        help="不运行求解器，只根据已有的 batch_summary.log 输出汇总",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    args = build_parser().parse_args(argv)

    try:
        config = BatchConfig.load(args.config)
        if args.report_only:
            if not config.ledger_path.is_file():
                LOGGER.error("找不到台账文件: %s", config.ledger_path)
                return 1
            summarize_ledger_file(config.ledger_path)
            return 0
        run_sweep(config)
    except (ConfigError, TemplateMissing) as exc:
        LOGGER.error("%s", exc)
        return 1
    except OSError as exc:
        LOGGER.error("无法创建结果目录或写入台账: %s", exc)
        return 1
    # 单个工况失败不影响退出码
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
