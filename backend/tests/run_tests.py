#!/usr/bin/env python3
"""
Image Proxy 测试运行脚本

使用方法：
    python tests/run_tests.py              # 运行所有测试
    python tests/run_tests.py -v           # 详细输出
    python tests/run_tests.py -k timeout   # 只运行包含 "timeout" 的测试
    python tests/run_tests.py --report     # 生成 HTML 报告

快速开始：
    pip install -e ".[test]"
    cd backend
    python tests/run_tests.py
"""

import os
import subprocess
import sys
from pathlib import Path

# 切换到 backend 目录
backend_dir = Path(__file__).parent.parent
os.chdir(backend_dir)


def main():
    """运行测试"""
    cmd = [sys.executable, "-m", "pytest", "tests/"]

    args = sys.argv[1:]

    if not any(arg.startswith("-v") for arg in args):
        cmd.append("-v")

    if "--report" in args:
        args.remove("--report")
        cmd.extend(["--html=tests/report.html", "--self-contained-html"])

    cmd.extend(args)

    print(f"\n{'='*60}")
    print("Image Proxy 测试")
    print(f"{'='*60}")
    print(f"运行命令: {' '.join(cmd)}")
    print(f"{'='*60}\n")

    result = subprocess.run(cmd)
    sys.exit(result.returncode)


if __name__ == "__main__":
    main()
