# =============================================================================
# test_codegen.py - Pass 1, Pass 2 and Encoder Unit Tests
# =============================================================================
# Tests for first_pass, resolve_labels and encode.
#
# Test coverage includes:
#   - Address counting and label binding in pass 1
#   - Label redefinition (permissive and strict)
#   - Forward and backward label resolution in pass 2
#   - Undefined labels
#   - Byte-exact encoding of each statement kind
#   - Size invariant between pass 1 and the encoder
# =============================================================================

import logging

import pytest

from stackvm_sdk.assembler.codegen import (
    Program,
    encode,
    encode_statement,
    first_pass,
    resolve_labels,
)
from stackvm_sdk.assembler.opcodes import MNEMONICS, Opcode
from stackvm_sdk.assembler.parser import Address, Instruction, LabelRef, RawBytes
from stackvm_sdk.errors import (
    AssemblerError,
    DuplicateSymbolError,
    OperandRangeError,
    UndefinedSymbolError,
)


# =============================================================================
# Pass 1
# =============================================================================

class TestFirstPass:
    """Statement collection and label addresses."""

    def test_addresses_advance_by_size(self):
        """Each statement starts where the previous one ended."""
        program = first_pass([
            "a: nop",
            "b: load 0x10",
            "c: .db hi",
            "d: halt",
        ])
        assert program.labels == {"a": 0, "b": 1, "c": 6, "d": 9}
        assert program.addresses() == [0, 1, 6, 9]
        assert program.size == 10

    def test_label_refs_kept_unresolved(self):
        """Pass 1 does not resolve operands."""
        program = first_pass(["jump end", "end: halt"])
        assert program.statements[0].operand == LabelRef("end")
        assert not program.is_resolved()

    def test_size_independent_of_operand(self):
        """Label and literal operands give the same size."""
        assert first_pass(["jump 0"]).size == first_pass(["jump far", "far: nop"]).size - 1

    def test_blank_lines_skipped(self):
        """Blank lines produce no statement."""
        program = first_pass(["", "nop", "   ", "halt", ""])
        assert len(program.statements) == 2
        assert program.statements[1].location.line == 4

    def test_empty_source(self):
        """No lines gives an empty program."""
        program = first_pass([])
        assert program.statements == []
        assert program.size == 0

    def test_labels_case_sensitive(self):
        """'Loop' and 'loop' are different labels."""
        program = first_pass(["Loop: nop", "loop: nop"])
        assert program.labels == {"Loop": 0, "loop": 1}

    def test_redefinition_overwrites(self, caplog):
        """By default a redeclared label takes the later address."""
        with caplog.at_level(logging.WARNING, logger="stackvm_sdk.assembler.codegen"):
            program = first_pass(["x: nop", "x: halt"])
        assert program.labels["x"] == 1
        assert "redefined" in caplog.text

    def test_redefinition_strict(self):
        """In strict mode a redeclared label is an error."""
        with pytest.raises(DuplicateSymbolError) as exc_info:
            first_pass(["x: nop", "x: halt"], filename="dup.asm", strict_labels=True)
        assert exc_info.value.symbol == "x"
        assert "dup.asm:1" in str(exc_info.value)

    def test_filename_in_locations(self):
        """Locations carry the given filename and 1-based lines."""
        program = first_pass(["nop", "halt"], filename="prog.asm")
        assert program.statements[1].location.filename == "prog.asm"
        assert program.statements[1].location.line == 2

    def test_accepts_generator(self):
        """Any iterable of lines is accepted."""
        program = first_pass(line for line in ["nop", "nop"])
        assert program.size == 2


# =============================================================================
# Pass 2
# =============================================================================

class TestResolveLabels:
    """Label operand substitution."""

    def test_forward_reference(self):
        """A label used before its declaration resolves."""
        program = resolve_labels(first_pass(["jump end", "nop", "end: halt"]))
        assert program.statements[0].operand == Address(6)

    def test_backward_reference(self):
        """A label used after its declaration resolves the same way."""
        program = resolve_labels(first_pass(["nop", "top: nop", "jump top"]))
        assert program.statements[2].operand == Address(1)

    def test_forward_and_backward_agree(self):
        """Declaration order does not change the resolved address."""
        program = resolve_labels(first_pass([
            "jump mid",
            "mid: nop",
            "jump mid",
        ]))
        assert program.statements[0].operand == program.statements[2].operand == Address(5)

    def test_literals_untouched(self):
        """Address operands pass through unchanged."""
        program = resolve_labels(first_pass(["load 0x10", "nop"]))
        assert program.statements[0] == Instruction(Opcode.LOAD, Address(0x10))
        assert program.statements[1] == Instruction(Opcode.NOP)

    def test_input_not_mutated(self):
        """Resolution builds new statements."""
        original = first_pass(["jump end", "end: halt"])
        resolved = resolve_labels(original)
        assert original.statements[0].operand == LabelRef("end")
        assert resolved.is_resolved()

    def test_undefined_label(self):
        """An undeclared label is an error."""
        with pytest.raises(UndefinedSymbolError) as exc_info:
            resolve_labels(first_pass(["jump nosuchlabel"], filename="t.asm"))
        err = exc_info.value
        assert err.symbol == "nosuchlabel"
        assert err.location.line == 1
        assert err.location.column == 6

    def test_undefined_label_suggestion(self):
        """Close label names are suggested."""
        with pytest.raises(UndefinedSymbolError) as exc_info:
            resolve_labels(first_pass(["loop: nop", "jump lop"]))
        assert "loop" in exc_info.value.similar_symbols
        assert "did you mean 'loop'" in str(exc_info.value)

    def test_label_case_must_match(self):
        """Resolution is case-sensitive."""
        with pytest.raises(UndefinedSymbolError):
            resolve_labels(first_pass(["END: halt", "jump end"]))

    def test_manual_program(self):
        """Programs built by hand resolve without source lines."""
        program = Program(
            statements=[Instruction(Opcode.CALL, LabelRef("f")), Instruction(Opcode.RET)],
            labels={"f": 5},
            size=6,
        )
        resolved = resolve_labels(program)
        assert resolved.statements[0].operand == Address(5)
        assert len(resolved.statements) == 2


# =============================================================================
# Encoder
# =============================================================================

class TestEncode:
    """Byte-exact serialization."""

    def test_load_hex(self):
        """load 0x10 is opcode $80 then 0x10 little-endian."""
        assert encode_statement(Instruction(Opcode.LOAD, Address(0x10))) == bytes([0x80, 0x10, 0x00, 0x00, 0x00])

    def test_word_little_endian(self):
        """Word operands are little-endian."""
        code = encode_statement(Instruction(Opcode.JUMP, Address(0x12345678)))
        assert code == bytes([0x82, 0x78, 0x56, 0x34, 0x12])

    def test_no_operand(self):
        """Stack operations are a single byte."""
        assert encode_statement(Instruction(Opcode.HALT)) == b"\x3f"

    def test_db(self):
        """RawBytes gets a zero terminator."""
        assert encode_statement(RawBytes(b"hello")) == bytes([0x68, 0x65, 0x6C, 0x6C, 0x6F, 0x00])

    def test_operand_ignored_for_no_extra_class(self):
        """Class 0 never encodes an operand, even if one is attached."""
        assert encode_statement(Instruction(Opcode.DUP, Address(7))) == b"\x04"

    def test_reserved_class_is_one_byte(self):
        """Class 3 opcodes encode as the opcode alone."""
        assert encode_statement(Instruction(0xC1, Address(7))) == b"\xc1"

    def test_byte_class(self):
        """Class 1 opcodes carry a single operand byte."""
        assert encode_statement(Instruction(0x40, Address(0x2A))) == b"\x40\x2a"

    def test_byte_class_range(self):
        """Class 1 operands must fit a byte."""
        with pytest.raises(OperandRangeError):
            encode_statement(Instruction(0x40, Address(0x100)))

    def test_unresolved_label_rejected(self):
        """Encoding a label operand is an invariant violation."""
        with pytest.raises(AssemblerError, match="unresolved label"):
            encode_statement(Instruction(Opcode.JUMP, LabelRef("x")))

    def test_missing_operand_rejected(self):
        """Word-class instructions need an operand."""
        with pytest.raises(AssemblerError, match="requires an operand"):
            encode_statement(Instruction(Opcode.CALL))

    def test_order_preserved(self):
        """Statements are concatenated in order."""
        code = encode([
            Instruction(Opcode.NOP),
            RawBytes(b"A"),
            Instruction(Opcode.STORE, Address(1)),
        ])
        assert code == bytes([0x00, 0x41, 0x00, 0x86, 0x01, 0x00, 0x00, 0x00])

    def test_size_mismatch_rejected(self):
        """A statement whose declared size disagrees with its bytes is an error."""

        class PaddedNop(Instruction):
            @property
            def size(self) -> int:
                return 3

        with pytest.raises(AssemblerError, match="size mismatch"):
            encode([PaddedNop(Opcode.NOP)])

    def test_length_matches_pass1(self):
        """Encoded length equals the address counted in pass 1."""
        program = resolve_labels(first_pass([
            "start: loadi msg",
            "loop: dup",
            "ldi.1",
            "cmp",
            "jumpz done",
            "inc",
            "jump loop",
            "done: halt",
            "msg: .db Hello, world",
        ]))
        assert len(encode(program.statements)) == program.size

    def test_first_byte_recovers_opcode(self):
        """Each instruction's first encoded byte is its opcode."""
        for name, info in MNEMONICS.items():
            operand = Address(0) if info.operand_count else None
            assert encode_statement(Instruction(info.opcode, operand))[0] == info.opcode
