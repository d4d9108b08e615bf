import io, zlib

import pytest

from bitwriter import BitWriter, canonical_codes, fixed_literal_code
from deflatedecompress import (BitInputStream, CanonicalCode, DecompressionError, Decompressor,
	InvalidBackReference, InvalidCodeLengths, InvalidHuffmanCode, ReservedBlockType,
	StoredBlockLengthMismatch, UnexpectedEndOfInput)


def inflate(data: bytes) -> bytes:
	return Decompressor.decompress_to_bytes(BitInputStream(data))


def raw_deflate(data: bytes, level: int = 9, strategy: int = zlib.Z_DEFAULT_STRATEGY) -> bytes:
	comp = zlib.compressobj(level, zlib.DEFLATED, -15, 9, strategy)
	return comp.compress(data) + comp.flush()


def fixed_block(out: BitWriter, final: bool = True) -> BitWriter:
	return out.write_bits(int(final), 1).write_bits(1, 2)


def literal(out: BitWriter, sym: int) -> BitWriter:
	return out.write_code(*fixed_literal_code(sym))


SAMPLE_TEXT = b"".join(
	b"line %d: the quick brown fox jumps over the lazy dog %d times\n" % (i, i * i % 97)
	for i in range(2000))


# ---- Bit reader ----

def test_bits_are_read_least_significant_first():
	bitin = BitInputStream(b"\x87")
	assert bitin.read_uint(1) == 1
	assert bitin.get_bit_position() == 1
	assert bitin.read_uint(3) == 0b011
	assert bitin.read_uint(4) == 0b1000
	assert bitin.get_bit_position() == 0


def test_read_spanning_bytes():
	bitin = BitInputStream(b"\x34\x12\xff")
	assert bitin.read_uint(16) == 0x1234
	assert bitin.read_uint(0) == 0
	assert bitin.get_byte_position() == 2


def test_read_past_end():
	bitin = BitInputStream(b"\xff")
	bitin.read_uint(5)
	with pytest.raises(UnexpectedEndOfInput) as excinfo:
		bitin.read_uint(4)
	assert excinfo.value.offset == 1
	assert isinstance(excinfo.value, EOFError)
	assert isinstance(excinfo.value, ValueError)


def test_get_bytes_discards_partial_byte():
	bitin = BitInputStream(b"\xff\x01\x02\x03")
	assert bitin.read_uint(3) == 0b111
	assert bitin.get_bytes(2) == b"\x01\x02"
	assert bitin.get_byte_position() == 3
	with pytest.raises(UnexpectedEndOfInput):
		bitin.get_bytes(2)
	assert bitin.get_bytes(1) == b"\x03"


def test_stream_starting_at_offset():
	bitin = BitInputStream(b"\x00\x00\x05", 2)
	assert bitin.read_uint(8) == 5
	with pytest.raises(ValueError):
		BitInputStream(b"\x00", 2)


# ---- Canonical code table ----

def test_table_layout_matches_rfc_example():
	# RFC 1951 section 3.2.2, alphabet ABCDEFGH
	code = CanonicalCode([3, 3, 3, 3, 3, 2, 4, 4])
	assert code.count_by_length[2 : 5] == (1, 5, 2)
	assert code.symbols == (5, 0, 1, 2, 3, 4, 6, 7)


@pytest.mark.parametrize("lengths", [
	[3, 3, 3, 3, 3, 2, 4, 4],
	[2, 1, 3, 3],
	[1, 0, 3, 2, 3],
	[0, 0, 5, 0, 1],
	[8]*144 + [9]*112 + [7]*24 + [8]*8,
	[5] * 30,
	[0] * 19,
])
def test_counts_match_nonzero_lengths(lengths):
	code = CanonicalCode(lengths)
	assert code.count_by_length[0] == 0
	assert sum(code.count_by_length) == sum(1 for x in lengths if x != 0)
	assert len(code.symbols) == sum(code.count_by_length)


@pytest.mark.parametrize("lengths", [
	[3, 3, 3, 3, 3, 2, 4, 4],
	[1, 0, 3, 2, 3],
	[8]*144 + [9]*112 + [7]*24 + [8]*8,
	[5] * 30,
	[15, 15] + [0] * 5 + [1],
])
def test_every_code_decodes_to_its_symbol(lengths):
	codes = canonical_codes(lengths)
	out = BitWriter()
	for sym in sorted(codes):
		out.write_code(*codes[sym])
	bitin = BitInputStream(out.write_bits(0, 16).getvalue())
	table = CanonicalCode(lengths)
	assert [table.decode_next_symbol(bitin) for _ in codes] == sorted(codes)


def test_empty_table_fails_instead_of_looping():
	table = CanonicalCode([0] * 19)
	assert table.symbols == ()
	with pytest.raises(InvalidHuffmanCode):
		table.decode_next_symbol(BitInputStream(b"\x00\x00"))


def test_incomplete_code_rejects_unused_bits():
	table = CanonicalCode([0, 1])
	assert table.decode_next_symbol(BitInputStream(b"\x00")) == 1
	with pytest.raises(InvalidHuffmanCode):
		table.decode_next_symbol(BitInputStream(b"\xff\xff"))


def test_over_full_lengths_rejected():
	with pytest.raises(InvalidCodeLengths):
		CanonicalCode([1, 1, 1])


def test_length_out_of_range_rejected():
	with pytest.raises(ValueError):
		CanonicalCode([16, 1])


def test_str_lists_codes():
	assert str(CanonicalCode([1, 0, 2, 2])) == "Code 0: Symbol 0\nCode 10: Symbol 2\nCode 11: Symbol 3\n"


# ---- Stored blocks ----

def test_stored_block():
	assert inflate(b"\x01\x05\x00\xfa\xffhello") == b"hello"


def test_stored_block_length_mismatch():
	with pytest.raises(StoredBlockLengthMismatch) as excinfo:
		inflate(b"\x01\x05\x00\xfb\xffhello")
	assert excinfo.value.expected == 0xFFFA
	assert excinfo.value.actual == 0xFFFB


def test_stored_block_truncated():
	with pytest.raises(UnexpectedEndOfInput):
		inflate(b"\x01\x05\x00\xfa\xffhel")


def test_stored_blocks_from_zlib():
	data = bytes(range(256)) * 400  # More than one stored block
	comp = raw_deflate(data, level=0)
	assert comp[0] & 0x06 == 0
	assert inflate(comp) == data


# ---- Fixed Huffman blocks ----

def test_fixed_block_literals():
	out = fixed_block(BitWriter())
	for _ in range(4):
		literal(out, ord("A"))
	literal(out, 256)
	assert inflate(out.getvalue()) == b"AAAA"


def test_fixed_block_overlapping_copy():
	out = fixed_block(BitWriter())
	literal(out, ord("a"))
	literal(out, 259)            # Length 5
	out.write_code(0, 5)         # Distance 1
	literal(out, 256)
	assert inflate(out.getvalue()) == b"aaaaaa"


def test_fixed_block_copy_with_extra_bits():
	out = fixed_block(BitWriter())
	for ch in b"abc":
		literal(out, ch)
	literal(out, 265)            # Length 11 + 1 extra bit
	out.write_bits(1, 1)
	out.write_code(2, 5)         # Distance 3
	literal(out, 256)
	assert inflate(out.getvalue()) == b"abc" * 5


def test_back_reference_before_start_of_output():
	out = fixed_block(BitWriter())
	for ch in b"abc":
		literal(out, ch)
	literal(out, 257)            # Length 3
	out.write_code(6, 5)         # Distance 9 + 2 extra bits
	out.write_bits(1, 2)
	literal(out, 256)
	with pytest.raises(InvalidBackReference) as excinfo:
		inflate(out.getvalue())
	assert excinfo.value.distance == 10
	assert excinfo.value.available == 3


def test_reserved_length_symbol():
	out = fixed_block(BitWriter())
	literal(out, 286)
	with pytest.raises(InvalidHuffmanCode):
		inflate(out.write_bits(0, 16).getvalue())


def test_reserved_distance_symbol():
	out = fixed_block(BitWriter())
	literal(out, ord("a"))
	literal(out, 257)
	out.write_code(30, 5)
	with pytest.raises(InvalidHuffmanCode):
		inflate(out.write_bits(0, 16).getvalue())


def test_fixed_blocks_from_zlib():
	comp = raw_deflate(SAMPLE_TEXT, strategy=zlib.Z_FIXED)
	assert (comp[0] >> 1) & 3 == 1
	assert inflate(comp) == SAMPLE_TEXT


# ---- Dynamic Huffman blocks ----

def test_dynamic_blocks_from_zlib():
	comp = raw_deflate(SAMPLE_TEXT)
	assert (comp[0] >> 1) & 3 == 2
	assert inflate(comp) == SAMPLE_TEXT


@pytest.mark.parametrize("level", [1, 6, 9])
def test_binary_data_from_zlib(level):
	data = bytes((i * 7919 >> 3) & 0xFF for i in range(50000)) + b"\x00" * 3000
	assert inflate(raw_deflate(data, level=level)) == data


def dynamic_header(out: BitWriter, codelencodelen) -> BitWriter:
	# hlit = 257, hdist = 1, hclen = 4: lengths for symbols 16, 17, 18, 0
	out.write_bits(1, 1).write_bits(2, 2)
	out.write_bits(0, 5).write_bits(0, 5).write_bits(0, 4)
	for cl in codelencodelen:
		out.write_bits(cl, 3)
	return out


def test_repeat_without_previous_length():
	out = dynamic_header(BitWriter(), [1, 0, 0, 1])
	out.write_code(1, 1)  # Symbol 16
	with pytest.raises(InvalidCodeLengths):
		inflate(out.write_bits(0, 8).getvalue())


def test_run_past_code_count():
	out = dynamic_header(BitWriter(), [0, 0, 1, 1])
	for _ in range(2):
		out.write_code(1, 1)  # Symbol 18
		out.write_bits(127, 7)
	with pytest.raises(InvalidCodeLengths):
		inflate(out.getvalue())


# ---- Block sequencing ----

def test_multiple_blocks_until_final():
	out = BitWriter()
	fixed_block(out, final=False)
	for ch in b"xy":
		literal(out, ch)
	literal(out, 256)
	out.write_bits(0, 1).write_bits(0, 2).write_bytes(b"\x02\x00\xfd\xff")
	out.write_bytes(b"zz")
	fixed_block(out)
	literal(out, 258)            # Length 4
	out.write_code(3, 5)         # Distance 4
	literal(out, 256)
	assert inflate(out.getvalue()) == b"xyzzxyzz"


def test_reserved_block_type():
	with pytest.raises(ReservedBlockType):
		inflate(b"\x07")


def test_empty_input():
	with pytest.raises(UnexpectedEndOfInput):
		inflate(b"")


def test_errors_share_base_class():
	with pytest.raises(DecompressionError):
		inflate(b"\x01\x05\x00\x00\x00")


def test_decompress_to_stream():
	out = io.BytesIO()
	Decompressor.decompress_to_stream(BitInputStream(raw_deflate(b"stream me")), out)
	assert out.getvalue() == b"stream me"
