#!/usr/bin/env python3
"""
alert-relay 테스트 실행 스크립트

계층별 단위 테스트 또는 HTTP 시나리오 테스트를 골라 실행합니다.
"""

import os
import sys
import subprocess
import argparse
from pathlib import Path


# 스위트 이름 -> (pytest 대상, 설명)
SUITES = {
    "all": (["tests/"], "전체 테스트"),
    "unit": (["tests/unit/"], "단위 테스트"),
    "scenario": (["tests/test_api.py", "tests/test_end_to_end.py"], "HTTP 시나리오 테스트"),
    "core": (["tests/unit/core/"], "Core 모듈 테스트"),
    "common": (["tests/unit/common/"], "Common 모듈 테스트"),
    "adapters": (["tests/unit/adapters/"], "Adapters 모듈 테스트"),
    "orchestrators": (["tests/unit/orchestrators/"], "Orchestrators 모듈 테스트"),
    "observability": (["tests/unit/observability/"], "Observability 모듈 테스트"),
}


def run_pytest(args, description):
    """pytest 실행. 성공하면 True"""
    cmd = [sys.executable, "-m", "pytest", *args]
    print(f"\n{'='*60}")
    print(f"실행 중: {description}")
    print(f"명령어: {' '.join(cmd)}")
    print(f"{'='*60}")

    result = subprocess.run(cmd)
    print("성공" if result.returncode == 0 else "실패")
    return result.returncode == 0


def main():
    """메인 함수"""
    parser = argparse.ArgumentParser(description="alert-relay 테스트 실행")
    parser.add_argument("--type", choices=sorted(SUITES), default="all", help="실행할 테스트 스위트")
    parser.add_argument("--coverage", action="store_true", help="alert_relay 커버리지 리포트")
    parser.add_argument("--verbose", action="store_true", help="상세 출력")
    parser.add_argument("--parallel", action="store_true", help="pytest-xdist 병렬 실행")
    args = parser.parse_args()

    os.chdir(Path(__file__).parent)

    pytest_args = []
    if args.verbose:
        pytest_args.append("-v")
    if args.coverage:
        pytest_args.extend(["--cov=alert_relay", "--cov-report=term-missing"])
    if args.parallel:
        pytest_args.extend(["-n", "auto"])

    targets, description = SUITES[args.type]
    if not run_pytest(pytest_args + targets, description):
        sys.exit(1)


if __name__ == "__main__":
    main()
