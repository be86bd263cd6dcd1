#!/usr/bin/env python3
"""
Per-file source parser: segments one decompiler output file and turns each
raw declaration into an Entity and each raw function body into a FunctionBody.
Nothing here is shared between files, so one SourceParser per file can run on
any worker.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import logging
import re

from CppParser import CppTypeParser
from core.declarator import DeclaratorParser
from core.name_rules import split_rightmost_identifier
from core.segmenter import DeclarationSegmenter, RawDeclaration, RawFunctionBody
from core.signature import FunctionSignatureParser
from core.statics import StaticDefinition, extract_static_definitions
from core.type_model import Entity, EnumMember, FunctionBody, FunctionSignature, TypeDescriptor
from decomp_types import TypeKind, TypedefKind
from utils.text import strip_comments, collapse_whitespace, split_top_level

logger = logging.getLogger(__name__)

_RECORD_KEYWORD_RE = re.compile(r'^((?:(?:const|volatile)\s+)*)(struct|union)\s+')
_ENUM_KEYWORD_RE = re.compile(r'^(?:(?:const|volatile)\s+)*enum\s+')
_ALIGN_RE = re.compile(r'__declspec\s*\(\s*align\s*\(\s*(\d+)\s*\)\s*\)')
_HEADER_NOISE_RE = re.compile(r'__declspec\s*\((?:[^()]|\([^()]*\))*\)|\b__cppobj\b|\b__unaligned\b')
_ACCESS_RE = re.compile(r'^(?:(?:public|protected|private|virtual)\s+)+')
_FUNCPTR_TYPEDEF_RE = re.compile(r'\(\s*(__\w+\s+)?\*\s*\w+\s*\)')
_SIGNATURE_TYPEDEF_RE = re.compile(r'__(cdecl|stdcall|thiscall|fastcall)\s+\w+\s*\(')
_SIGNATURE_TYPEDEF_PARTS_RE = re.compile(r'^(.+?)\s+(__\w+)\s+(\w+)\s*\((.*)\)\s*$')
_ENUM_MEMBER_RE = re.compile(r'^\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*(?:=\s*(.*?))?\s*$', re.DOTALL)
_ARRAY_SUFFIX_RE = re.compile(r'((?:\s*\[\s*\d*\s*\])+)\s*$')


@dataclass
class FileParseResult:
    file: str
    entities: List[Entity] = field(default_factory=list)
    function_bodies: List[FunctionBody] = field(default_factory=list)
    static_definitions: List[StaticDefinition] = field(default_factory=list)


class SourceParser:
    def __init__(
        self,
        file: str = "",
        declarator: Optional[DeclaratorParser] = None,
        collect_static_definitions: bool = False,
    ) -> None:
        self.file = file
        self.declarator = declarator if declarator is not None else DeclaratorParser()
        self.collect_static_definitions = collect_static_definitions

    def parse(self, text: str) -> FileParseResult:
        segmenter = DeclarationSegmenter(text, self.file)
        result = FileParseResult(file=self.file)

        for raw in segmenter.declarations():
            try:
                entity = self.parse_declaration(raw)
            except Exception as e:
                logger.warning(f"{self._where(raw.line_number)}: skipping malformed {raw.keyword} declaration: {e}")
                continue
            if entity is not None:
                result.entities.append(entity)

        for raw_body in segmenter.function_bodies():
            try:
                body = self.parse_function_body(raw_body)
            except Exception as e:
                logger.warning(f"{self._where(raw_body.line_number)}: skipping malformed function body: {e}")
                continue
            if body is not None:
                result.function_bodies.append(body)

        if self.collect_static_definitions:
            result.static_definitions = extract_static_definitions(text, self.file)

        logger.debug(
            f"Parsed {self.file or '<source>'}: {len(result.entities)} declarations, "
            f"{len(result.function_bodies)} function bodies"
        )
        return result

    def parse_declaration(self, raw: RawDeclaration) -> Optional[Entity]:
        if raw.keyword in ("struct", "union"):
            return self._parse_record(raw)
        if raw.keyword == "enum":
            return self._parse_enum(raw)
        return self._parse_typedef(raw)

    def _where(self, line_number: Optional[int]) -> str:
        return f"{self.file}:{line_number}" if self.file else f"line {line_number}"

    # ===============================================
    # STRUCTS AND UNIONS
    # ===============================================

    def _parse_record(self, raw: RawDeclaration) -> Optional[Entity]:
        code = strip_comments(raw.text)
        brace = code.find('{')
        header = collapse_whitespace(code[:brace] if brace != -1 else code.split(';')[0])

        m = _RECORD_KEYWORD_RE.match(header)
        if not m:
            logger.warning(f"{self._where(raw.line_number)}: could not find record keyword in '{header}'")
            return None
        qualifiers = m.group(1).split()
        kind = TypeKind.STRUCT if m.group(2) == "struct" else TypeKind.UNION
        header = header[m.end():]

        alignment: Optional[int] = None
        align = _ALIGN_RE.search(header)
        if align:
            alignment = int(align.group(1))
        header = collapse_whitespace(_HEADER_NOISE_RE.sub(' ', header))

        type_str, rest = CppTypeParser.eat_type(header)
        desc = CppTypeParser.parse_type(type_str)
        if not desc.base_name:
            logger.warning(f"{self._where(raw.line_number)}: failed to parse {m.group(2)} name from '{header}'")
            return None

        entity = Entity(
            kind=kind,
            base_name=desc.base_name,
            namespace=desc.namespace,
            template_arguments=desc.template_arguments,
            is_const="const" in qualifiers,
            is_volatile="volatile" in qualifiers,
            alignment=alignment,
            file=self.file,
            line_number=raw.line_number,
            source=raw.text,
        )
        entity.base_types = self._parse_inheritance(rest)

        if not raw.is_forward_declaration:
            self._parse_members(entity, raw)
        return entity

    @staticmethod
    def _parse_inheritance(rest: str) -> List[TypeDescriptor]:
        rest = rest.strip()
        if not rest.startswith(':'):
            return []
        bases: List[TypeDescriptor] = []
        for part in split_top_level(rest[1:], ',', '<(['):
            part = _ACCESS_RE.sub('', part.strip())
            if part:
                bases.append(CppTypeParser.parse_type(part))
        return bases

    def _body_segments(self, raw: RawDeclaration) -> List[Tuple[int, str]]:
        """(line_number, text) for each line between the outer braces."""
        lines = raw.lines
        open_index = next(i for i, line in enumerate(lines) if '{' in strip_comments(line))
        closing = [i for i, line in enumerate(lines) if '}' in strip_comments(line)]
        # Unterminated declarations run to the end of the file
        close_index = closing[-1] if closing else len(lines) - 1

        segments: List[Tuple[int, str]] = []
        for i in range(open_index, close_index + 1):
            line = lines[i]
            if i == open_index:
                line = line[line.index('{') + 1:]
            if i == close_index and closing:
                line = line[:line.rindex('}')]
            segments.append((raw.line_number + i, line))
        return segments

    def _parse_members(self, entity: Entity, raw: RawDeclaration) -> None:
        order = 0
        seen_bases = set()
        for line_number, line in self._body_segments(raw):
            code = strip_comments(line).strip()
            if not code or code.startswith('#') or code in ('{', '}', '};'):
                continue

            pieces = [line] if code.count(';') <= 1 else [p + ';' for p in code.split(';') if p.strip()]
            for piece in pieces:
                member = self.declarator.parse_member(piece, line_number)
                if member is None:
                    continue
                if DeclaratorParser.is_base_class_member(member):
                    if member.type_reference.text not in seen_bases:
                        seen_bases.add(member.type_reference.text)
                        entity.base_types.append(member.type_reference)
                    continue
                member.declaration_order = order
                order += 1
                entity.members.append(member)

    # ===============================================
    # ENUMS
    # ===============================================

    def _parse_enum(self, raw: RawDeclaration) -> Optional[Entity]:
        code = strip_comments(raw.text)
        brace = code.find('{')
        header = collapse_whitespace(code[:brace] if brace != -1 else code.split(';')[0])
        header = _ENUM_KEYWORD_RE.sub('', header)

        is_bitmask = "__bitmask" in header
        header = collapse_whitespace(header.replace("__bitmask", " "))

        type_str, rest = CppTypeParser.eat_type(header)
        desc = CppTypeParser.parse_type(type_str)
        if not desc.base_name:
            logger.warning(f"{self._where(raw.line_number)}: failed to parse enum name from '{header}'")
            return None

        entity = Entity(
            kind=TypeKind.ENUM,
            base_name=desc.base_name,
            namespace=desc.namespace,
            template_arguments=desc.template_arguments,
            is_bitmask=is_bitmask,
            file=self.file,
            line_number=raw.line_number,
            source=raw.text,
        )
        rest = rest.strip()
        if rest.startswith(':'):
            entity.underlying_type = CppTypeParser.parse_type(rest[1:])

        if brace != -1:
            close = code.rfind('}')
            body = code[brace + 1:close] if close > brace else code[brace + 1:]
            body_line = raw.line_number + code.count('\n', 0, brace)
            self._parse_enum_members(entity, body, body_line)
        return entity

    def _parse_enum_members(self, entity: Entity, body: str, first_line: int) -> None:
        offset = 0
        for part in split_top_level(body, ',', '({'):
            line_number = first_line + body.count('\n', 0, offset + len(part) - len(part.lstrip()))
            offset += len(part) + 1
            if not part.strip():
                continue
            m = _ENUM_MEMBER_RE.match(part)
            if not m:
                logger.warning(
                    f"{self._where(line_number)}: failed to parse enum member in "
                    f"'{entity.fully_qualified_name}': {part.strip()}"
                )
                continue
            value = collapse_whitespace(m.group(2) or "")
            entity.enum_members.append(EnumMember(name=m.group(1), value=value, line_number=line_number))

    # ===============================================
    # TYPEDEFS
    # ===============================================

    def _parse_typedef(self, raw: RawDeclaration) -> Optional[Entity]:
        decl = collapse_whitespace(strip_comments(raw.text))
        decl = re.sub(r'^typedef\s+', '', decl).rstrip(';').strip()
        if '{' in decl:
            logger.warning(f"{self._where(raw.line_number)}: typedef with inline body is not supported: '{decl}'")
            return None

        entity = Entity(
            kind=TypeKind.TYPEDEF,
            base_name="",
            file=self.file,
            line_number=raw.line_number,
            source=raw.text,
        )

        if _FUNCPTR_TYPEDEF_RE.search(decl):
            if FunctionSignatureParser.has_nested_function_pointer(decl):
                parsed = FunctionSignatureParser.parse_nested_function_pointer(decl)
            else:
                parsed = FunctionSignatureParser.parse_function_pointer(decl)
            if parsed is not None:
                name, signature = parsed
                signature.name = name
                entity.typedef_kind = TypedefKind.FUNCTION_POINTER
                entity.typedef_signature = signature
                entity.aliased_type = FunctionSignatureParser.function_pointer_type(signature)
                return self._name_typedef(entity, name)
            logger.warning(f"{self._where(raw.line_number)}: failed to parse function pointer typedef: {decl}")

        elif _SIGNATURE_TYPEDEF_RE.search(decl):
            m = _SIGNATURE_TYPEDEF_PARTS_RE.match(decl)
            if m:
                ret, cc, name, params = (g.strip() for g in m.groups())
                signature = FunctionSignature(
                    name=name,
                    return_type=CppTypeParser.parse_type(ret),
                    calling_convention=cc,
                    parameters=FunctionSignatureParser.parse_parameters(params),
                )
                aliased = FunctionSignatureParser.function_pointer_type(signature)
                aliased.is_pointer = False
                aliased.pointer_depth = 0
                entity.typedef_kind = TypedefKind.FUNCTION_SIGNATURE
                entity.typedef_signature = signature
                entity.aliased_type = aliased
                return self._name_typedef(entity, name)
            logger.warning(f"{self._where(raw.line_number)}: failed to parse function signature typedef: {decl}")

        array_suffix = ""
        array = _ARRAY_SUFFIX_RE.search(decl)
        if array:
            array_suffix = array.group(1)
            decl = decl[:array.start()].strip()

        before, name, after = split_rightmost_identifier(decl)
        if not name or not (before + after).strip():
            logger.warning(f"{self._where(raw.line_number)}: unable to parse typedef '{decl}'")
            return None
        entity.typedef_kind = TypedefKind.SIMPLE
        entity.aliased_type = CppTypeParser.parse_type(before + after + array_suffix)
        return self._name_typedef(entity, name)

    @staticmethod
    def _name_typedef(entity: Entity, name: str) -> Entity:
        scope = FunctionSignatureParser.scope_of(name)
        entity.namespace = scope
        entity.base_name = name[len(scope) + 2:] if scope else name
        return entity

    # ===============================================
    # FUNCTION BODIES
    # ===============================================

    def parse_function_body(self, raw: RawFunctionBody) -> Optional[FunctionBody]:
        signature = FunctionSignatureParser.parse_definition(raw.signature)
        if signature is None:
            logger.warning(f"{self._where(raw.line_number)}: unable to parse function signature '{raw.signature}'")
            return None
        return FunctionBody(
            name=signature.name,
            signature=signature,
            address=raw.address,
            body_text=raw.body_text,
            file=self.file,
            line_number=raw.line_number,
            parent_name=FunctionSignatureParser.scope_of(signature.name),
        )


__all__ = ["FileParseResult", "SourceParser"]
