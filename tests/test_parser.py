# =============================================================================
# test_parser.py - Operand and Line Parser Tests
# =============================================================================
# Tests for parse_operand and parse_line.
#
# Test coverage includes:
#   - Hex, decimal and label operands
#   - Malformed and out-of-range literals
#   - Label declarations
#   - Mnemonic case handling
#   - .db data handling
#   - Unknown mnemonics and missing operands
#   - Source locations on errors
# =============================================================================

import pytest

from stackvm_sdk.assembler.opcodes import Opcode
from stackvm_sdk.assembler.parser import (
    Address,
    Instruction,
    LabelRef,
    RawBytes,
    parse_line,
    parse_operand,
)
from stackvm_sdk.errors import (
    AssemblerError,
    AssemblySyntaxError,
    SourceLocation,
    UnknownInstructionError,
)


# =============================================================================
# Operand Parser
# =============================================================================

class TestParseOperand:
    """Classification of operand tokens."""

    def test_hex(self):
        """0x prefix parses base 16."""
        assert parse_operand("0x10") == Address(0x10)

    def test_hex_mixed_case_digits(self):
        """Hex digits may be upper or lower case."""
        assert parse_operand("0xDeadBeef") == Address(0xDEADBEEF)

    def test_decimal(self):
        """Plain digits parse base 10."""
        assert parse_operand("16") == Address(16)

    def test_zero(self):
        """Zero is a valid address."""
        assert parse_operand("0") == Address(0)

    def test_label(self):
        """Anything else is a label reference, verbatim."""
        assert parse_operand("loop") == LabelRef("loop")

    def test_label_case_preserved(self):
        """Label names keep their case."""
        assert parse_operand("MyLabel") == LabelRef("MyLabel")

    def test_uppercase_prefix_is_a_label(self):
        """Only a lower-case 0x prefix marks hex."""
        assert parse_operand("0X10") == LabelRef("0X10")

    def test_negative_is_a_label(self):
        """A leading minus is not an unsigned integer."""
        assert parse_operand("-1") == LabelRef("-1")

    def test_invalid_hex_digits(self):
        """Non-hex characters after 0x are a syntax error."""
        with pytest.raises(AssemblySyntaxError, match="invalid hexadecimal"):
            parse_operand("0xZZ")

    def test_empty_hex(self):
        """A bare 0x prefix is a syntax error."""
        with pytest.raises(AssemblySyntaxError):
            parse_operand("0x")

    def test_max_word(self):
        """0xFFFFFFFF is the largest address."""
        assert parse_operand("0xFFFFFFFF") == Address(0xFFFFFFFF)
        assert parse_operand("4294967295") == Address(0xFFFFFFFF)

    def test_hex_overflow(self):
        """Values wider than 32 bits are rejected."""
        with pytest.raises(AssemblySyntaxError, match="32-bit"):
            parse_operand("0x100000000")

    def test_decimal_overflow(self):
        """Decimal values wider than 32 bits are rejected."""
        with pytest.raises(AssemblySyntaxError):
            parse_operand("4294967296")

    def test_syntax_error_is_assembler_error(self):
        """Syntax errors belong to the assembler hierarchy."""
        with pytest.raises(AssemblerError):
            parse_operand("0xg")

    def test_address_range_checked(self):
        """Address values outside a word are refused at construction."""
        with pytest.raises(ValueError):
            Address(-1)
        with pytest.raises(ValueError):
            Address(1 << 32)


# =============================================================================
# Line Parser
# =============================================================================

class TestParseLine:
    """Splitting lines into label and statement."""

    def test_no_operand(self):
        """A bare mnemonic yields an instruction without operand."""
        parsed = parse_line("halt")
        assert parsed.label is None
        assert parsed.statement == Instruction(Opcode.HALT)

    def test_operand(self):
        """Operand mnemonics consume the next token."""
        parsed = parse_line("load 0x10")
        assert parsed.statement == Instruction(Opcode.LOAD, Address(0x10))

    def test_label_declaration(self):
        """A leading token ending in ':' declares a label."""
        parsed = parse_line("start: jump start")
        assert parsed.label == "start"
        assert parsed.statement == Instruction(Opcode.JUMP, LabelRef("start"))

    def test_mnemonic_is_case_insensitive(self):
        """Mnemonics are lower-cased before lookup."""
        assert parse_line("HALT").statement.opcode == Opcode.HALT
        assert parse_line("LDI.1").statement.opcode == Opcode.LDI1

    def test_label_operand_case_preserved(self):
        """Operands are not lower-cased."""
        parsed = parse_line("CALL PrintChar")
        assert parsed.statement.operand == LabelRef("PrintChar")

    def test_extra_tokens_ignored(self):
        """Tokens after the operand are ignored."""
        parsed = parse_line("jump end trailing words")
        assert parsed.statement.operand == LabelRef("end")

    def test_operand_ignored_for_stack_ops(self):
        """Stack operations do not read an operand token."""
        parsed = parse_line("inc 5")
        assert parsed.statement == Instruction(Opcode.INC)

    def test_repeated_spaces_collapse(self):
        """Runs of whitespace separate tokens like a single space."""
        parsed = parse_line("  loop:   jumpnz\t 0x20  ")
        assert parsed.label == "loop"
        assert parsed.statement == Instruction(Opcode.JUMPNZ, Address(0x20))

    def test_trailing_newline(self):
        """Line terminators are not part of the statement."""
        parsed = parse_line("store 8\r\n")
        assert parsed.statement == Instruction(Opcode.STORE, Address(8))

    def test_db(self):
        """.db produces the ASCII bytes of its text."""
        parsed = parse_line(".db hello")
        assert parsed.statement == RawBytes(b"hello")
        assert parsed.statement.size == 6

    def test_db_keeps_spacing(self):
        """.db data is the rest of the line, spacing included."""
        parsed = parse_line("msg: .db Hello,  World ")
        assert parsed.label == "msg"
        assert parsed.statement.data == b"Hello,  World "

    def test_db_empty(self):
        """.db with no text is just a terminator."""
        parsed = parse_line(".db")
        assert parsed.statement.data == b""
        assert parsed.statement.size == 1

    def test_db_case_insensitive(self):
        """.DB is accepted like .db."""
        assert parse_line(".DB x").statement == RawBytes(b"x")

    def test_db_non_ascii(self):
        """.db only accepts ASCII text."""
        with pytest.raises(AssemblySyntaxError, match="ASCII"):
            parse_line(".db café")

    def test_unknown_mnemonic(self):
        """Mnemonics outside the table raise UnknownInstructionError."""
        with pytest.raises(UnknownInstructionError) as exc_info:
            parse_line("frobnicate")
        assert exc_info.value.mnemonic == "frobnicate"

    def test_unknown_mnemonic_suggestion(self):
        """Near misses get a hint."""
        with pytest.raises(UnknownInstructionError) as exc_info:
            parse_line("jmup end")
        assert "jump" in exc_info.value.suggestions
        assert "did you mean" in str(exc_info.value)

    def test_missing_operand(self):
        """An operand mnemonic at end of line is a syntax error."""
        with pytest.raises(AssemblySyntaxError, match="requires an operand"):
            parse_line("jump")

    def test_label_without_statement(self):
        """A label must be followed by a statement."""
        with pytest.raises(AssemblySyntaxError, match="expected an instruction"):
            parse_line("end:")

    def test_empty_label_name(self):
        """A lone colon is not a label."""
        with pytest.raises(AssemblySyntaxError, match="empty label"):
            parse_line(": halt")

    def test_statement_location(self):
        """Statements record the column of their mnemonic."""
        parsed = parse_line("top: halt", SourceLocation("demo.asm", 7))
        assert parsed.statement.location == SourceLocation("demo.asm", 7, 6)

    def test_error_location_points_at_operand(self):
        """Bad literals are reported at their column."""
        with pytest.raises(AssemblySyntaxError) as exc_info:
            parse_line("load 0xQQ", SourceLocation("demo.asm", 3))
        err = exc_info.value
        assert err.location == SourceLocation("demo.asm", 3, 6)
        assert "demo.asm:3:6: error:" in str(err)
        assert "load 0xQQ" in str(err)

    def test_error_underlines_token(self):
        """The excerpt underlines the whole offending token."""
        with pytest.raises(AssemblySyntaxError) as exc_info:
            parse_line("load 0xQQ")
        lines = str(exc_info.value).splitlines()
        assert lines[1] == "    load 0xQQ"
        assert lines[2] == "         ^~~~"
