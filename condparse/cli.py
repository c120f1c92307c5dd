# condparse/cli.py
"""condparse – command line front end

사용 예)
    $ python -m condparse.cli parse --text 'folder:inbox and (from:john or from:jane) hello'
    $ python -m condparse.cli parse --input query.txt --json
    $ python -m condparse.cli check --text 'a:b and c:"unterminated'
    $ python -m condparse.cli diag 'foo:bar baz' 8 'Expected colon after key'

기능
----
- parse : 조건 트리 / unparsed 꼬리 / meta를 출력 (--json 이면 JSON 덤프)
- check : 입력 전체가 조건으로 해석되면 0, 아니면 진단 메시지와 함께 2
- diag  : 임의 위치에 대한 4줄 진단 메시지(format_diagnostic)를 출력

디버그 모드(-D/--debug)를 켜면 파서의 재귀 트레이스를 stderr로 출력합니다.
"""

from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .ast import ConditionDump, ParseResult
from .parser import ConditionSyntaxError, ParserOptions, format_diagnostic, format_error, parse

# ------------------------------
# 헬퍼
# ------------------------------

def _eprint(*args, **kw) -> None:
    print(*args, file=sys.stderr, **kw)


def _load_query_text(path: str) -> str:
    """파일에서 검색식을 읽는다(개행 정규화)."""
    text = Path(path).read_text(encoding="utf-8")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _read_source(args) -> str:
    if args.text is not None:
        return args.text
    return _load_query_text(args.input)


def _options_from_args(args) -> ParserOptions:
    return ParserOptions(
        default_operator=args.default_operator,
        debug=args.debug,
        max_depth=args.max_depth,
    )


def _format_tree(nodes: ConditionDump, indent: int = 0) -> List[str]:
    """트리를 사람이 읽기 좋은 줄 목록으로. [op]는 다음 형제로의 join."""
    pad = "  " * indent
    lines: List[str] = []
    for node in nodes:
        if node.is_group:
            lines.append(f"{pad}[{node.operator}] (")
            lines.extend(_format_tree(node.condition, indent + 1))
            lines.append(f"{pad})")
        else:
            e = node.expression
            lines.append(f"{pad}[{node.operator}] {e.key!r} {e.operator} {e.value!r}")
    return lines


def _print_result(res: ParseResult) -> None:
    print("[PARSED]")
    if res.parsed:
        for line in _format_tree(res.parsed, 1):
            print(line)
    else:
        print("  (none)")
    print(f"\n[UNPARSED]\n  {res.unparsed!r}")
    print("\n[META]")
    print(f"  keys      : {', '.join(map(str, res.meta.keys))}")
    print(f"  operators : {', '.join(map(str, res.meta.operators))}")
    print(f"  values    : {', '.join(map(str, res.meta.values))}")
    print(f"  expressions: {len(res.meta.expressions)}")


def _trailing_error(source: str, res: ParseResult) -> Optional[ConditionSyntaxError]:
    """unparsed 꼬리가 남았으면 그 원인(또는 꼬리 시작 위치)의 진단을 만든다."""
    if not res.unparsed:
        return None
    if res.error is not None:
        return res.error
    text = source.strip()
    return format_error(text, len(text) - len(res.unparsed), "Unexpected trailing input")

# ------------------------------
# 커맨드 구현
# ------------------------------

def cmd_parse(args) -> int:
    try:
        source = _read_source(args)
        res = parse(source, _options_from_args(args))
    except Exception as e:
        _eprint("[ERROR]", type(e).__name__, str(e))
        return 2

    if args.json:
        print(json.dumps(res.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_result(res)
    if args.debug and res.error is not None:
        _eprint("[DEBUG] stopped at:")
        _eprint(str(res.error))
    return 0


def cmd_check(args) -> int:
    try:
        source = _read_source(args)
        res = parse(source, _options_from_args(args))
        err = _trailing_error(source, res)
        if err is not None:
            raise err
    except ConditionSyntaxError as e:
        _eprint("[SYNTAX ERROR]")
        _eprint(str(e))
        return 2
    except Exception as e:
        _eprint("[ERROR]", type(e).__name__, str(e))
        return 2

    print(f"[CHECK OK] nodes={len(res.parsed)} keys={len(res.meta.keys)} expressions={len(res.meta.expressions)}")
    return 0


def cmd_diag(args) -> int:
    print(format_diagnostic(args.text, args.position, args.message, args.radius))
    return 0

# ------------------------------
# 엔트리포인트
# ------------------------------

def _add_source_args(p: argparse.ArgumentParser) -> None:
    src_group = p.add_mutually_exclusive_group(required=True)
    src_group.add_argument("--text", help="직접 입력 검색식")
    src_group.add_argument("--input", help="검색식 파일 경로")
    p.add_argument("--default-operator", default=None, help="key:value 형태에 쓸 연산자 (기본: eq)")
    p.add_argument("--max-depth", type=int, default=ParserOptions.max_depth, help="괄호 중첩 한도")
    p.add_argument("-D", "--debug", action="store_true", help="파서 트레이스를 stderr로 출력")


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="condparse", description="search condition notation parser")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_parse = sub.add_parser("parse", help="검색식을 조건 트리와 자유 텍스트로 나눕니다")
    _add_source_args(p_parse)
    p_parse.add_argument("--json", action="store_true", help="결과를 JSON으로 출력")
    p_parse.set_defaults(func=cmd_parse)

    p_check = sub.add_parser("check", help="검색식 전체가 조건으로 해석되는지 검사합니다")
    _add_source_args(p_check)
    p_check.set_defaults(func=cmd_check)

    p_diag = sub.add_parser("diag", help="주어진 위치에 대한 진단 메시지를 출력합니다")
    p_diag.add_argument("text", help="원문")
    p_diag.add_argument("position", type=int, help="오류 위치(0-based)")
    p_diag.add_argument("message", help="메시지")
    p_diag.add_argument("--radius", type=int, default=20, help="앞뒤로 보여줄 글자 수")
    p_diag.set_defaults(func=cmd_diag)

    args = ap.parse_args(argv)
    return int(args.func(args))

if __name__ == "__main__":
    sys.exit(main())
