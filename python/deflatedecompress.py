# 
# Simple gzip decompressor (Python)
# 
# Copyright (c) Project Nayuki
# MIT License. See readme file.
# https://www.nayuki.io/page/simple-deflate-decompressor
# 

import logging
from typing import BinaryIO, List, Optional, Sequence, Tuple


logger = logging.getLogger(__name__)


# ---- Errors ----

class DecompressionError(ValueError):
	
	"""Base class for malformed input. Carries the byte offset into the
	input buffer where the problem was detected, if known."""
	
	offset: Optional[int]
	
	def __init__(self, message: str, offset: Optional[int] = None):
		if offset is not None:
			message = f"{message} (at byte offset {offset})"
		super().__init__(message)
		self.offset = offset


class UnexpectedEndOfInput(DecompressionError, EOFError):
	"""The input ended before a field or bit sequence was complete."""


class InvalidHuffmanCode(DecompressionError):
	"""No canonical code of length 1 to 15 matches the input bits, or the code decoded
	a reserved symbol: length symbols 286 and 287, or distance symbols 30 and 31."""


class InvalidCodeLengths(DecompressionError):
	"""A dynamic block describes an unusable set of code lengths."""


class StoredBlockLengthMismatch(DecompressionError):
	
	expected: int
	actual: int
	
	def __init__(self, expected: int, actual: int, offset: Optional[int] = None):
		super().__init__(f"Stored block NLEN mismatch: expected={expected:04X}, actual={actual:04X}", offset)
		self.expected = expected
		self.actual = actual


class ReservedBlockType(DecompressionError):
	pass


class InvalidBackReference(DecompressionError):
	
	distance: int
	available: int
	
	def __init__(self, distance: int, available: int, offset: Optional[int] = None):
		super().__init__(f"Back-reference distance {distance} exceeds output length {available}", offset)
		self.distance = distance
		self.available = available



class BitInputStream:
	
	"""A stream of bits read from an in-memory byte buffer. Bits are packed in
	little endian within a byte. For example, the byte 0x87 reads as the sequence
	of bits [1,1,1,0,0,0,0,1]. Whole bytes are pulled into the bit buffer one at
	a time, so fewer than 8 unread bits remain buffered after any read."""
	
	
	# ---- Fields ----
	
	# The underlying buffer, not copied.
	_source: Sequence[int]
	
	# Index of the next byte to pull from _source, never beyond len(_source).
	_byte_position: int
	
	# Unconsumed bits, least significant bit first.
	_bit_buffer: int
	
	# Number of valid bits in _bit_buffer.
	_bits_available: int
	
	
	# ---- Constructor ----
	
	def __init__(self, source: Sequence[int], offset: int = 0):
		"""Constructs a bit input stream over the given bytes,
		starting at the given byte offset."""
		if not (0 <= offset <= len(source)):
			raise ValueError("Offset out of range")
		self._source = source
		self._byte_position = offset
		self._bit_buffer = 0
		self._bits_available = 0
	
	
	# ---- Methods ----
	
	def get_byte_position(self) -> int:
		"""Returns the offset of the next byte that has not been pulled into the bit buffer."""
		return self._byte_position
	
	
	def get_bit_position(self) -> int:
		"""Returns the current bit position, which ascends from 0 to 7 as bits are read."""
		assert 0 <= self._bits_available <= 7, "Unreachable state"
		return -self._bits_available % 8
	
	
	def read_uint(self, numbits: int) -> int:
		"""Reads the given number of bits from this stream,
		packing them in little endian as an unsigned integer."""
		if numbits < 0:
			raise ValueError("Number of bits out of range")
		value: int = self._bit_buffer
		available: int = self._bits_available
		while available < numbits:
			if self._byte_position == len(self._source):
				raise UnexpectedEndOfInput(
					f"Unexpected end of stream: need {numbits} bits, have {available}",
					self._byte_position)
			value |= self._source[self._byte_position] << available
			self._byte_position += 1
			available += 8
		self._bit_buffer = value >> numbits
		self._bits_available = available - numbits
		return value & ((1 << numbits) - 1)
	
	
	def discard(self) -> None:
		"""Drops the unread bits of a partially consumed byte, aligning to the next byte boundary."""
		self._bit_buffer = 0
		self._bits_available = 0
	
	
	def get_bytes(self, count: int) -> bytes:
		"""Aligns to a byte boundary, then returns the next `count` raw bytes."""
		if count < 0:
			raise ValueError("Count out of range")
		self.discard()
		end: int = self._byte_position + count
		if end > len(self._source):
			raise UnexpectedEndOfInput(
				f"Unexpected end of stream: need {count} bytes, have {len(self._source) - self._byte_position}",
				self._byte_position)
		result = bytes(self._source[self._byte_position : end])
		self._byte_position = end
		return result



class CanonicalCode:
	
	"""A canonical Huffman code, where the code values for each symbol are
	derived from a given sequence of code lengths. This data structure is
	immutable. No explicit code tree is built; decoding walks the per-length
	counts and the symbols sorted by (length, symbol value).
	
	Example:
	  Code lengths (canonical code):
	    Symbol A: 1
	    Symbol B: 0 (no code)
	    Symbol C: 3
	    Symbol D: 2
	    Symbol E: 3
	
	  Generated Huffman codes:
	    Symbol A: 0
	    Symbol B: (Absent)
	    Symbol C: 110
	    Symbol D: 10
	    Symbol E: 111
	
	  Table contents:
	    count_by_length = [0, 1, 1, 2, 0, ..., 0]
	    symbols = [A, D, C, E]"""
	
	
	MAX_CODE_LENGTH = 15
	
	
	# ---- Fields ----
	
	# Number of codes of each bit length. Index 0 is unused and always 0.
	count_by_length: Tuple[int, ...]
	
	# Symbol values ordered by code length, then by symbol value.
	symbols: Tuple[int, ...]
	
	
	# ---- Constructor ----
	
	def __init__(self, codelengths: Sequence[int]):
		"""Constructs a canonical Huffman code from the given list of symbol code lengths.
		Each code length must be in the range [0, 15], where 0 means no code for the symbol.
		Under-full (incomplete) codes are accepted, because DEFLATE permits them; an
		all-zero list produces an empty code that fails on every decode.
		Over-full codes raise InvalidCodeLengths."""
		
		if any(not (0 <= x <= CanonicalCode.MAX_CODE_LENGTH) for x in codelengths):
			raise ValueError("Code length out of range")
		
		counts: List[int] = [0] * (CanonicalCode.MAX_CODE_LENGTH + 1)
		for cl in codelengths:
			counts[cl] += 1
		counts[0] = 0
		
		# Each length doubles the code space; a negative remainder means over-full
		left: int = 1
		for length in range(1, CanonicalCode.MAX_CODE_LENGTH + 1):
			left = (left << 1) - counts[length]
			if left < 0:
				raise InvalidCodeLengths("This canonical code produces an over-full Huffman code tree")
		
		offsets: List[int] = [0] * (CanonicalCode.MAX_CODE_LENGTH + 1)
		for length in range(1, CanonicalCode.MAX_CODE_LENGTH):
			offsets[length + 1] = offsets[length] + counts[length]
		
		symbols: List[int] = [0] * sum(counts)
		for (symbol, cl) in enumerate(codelengths):
			if cl != 0:
				symbols[offsets[cl]] = symbol
				offsets[cl] += 1
		
		self.count_by_length = tuple(counts)
		self.symbols = tuple(symbols)
	
	
	# ---- Methods ----
	
	def decode_next_symbol(self, inp: BitInputStream) -> int:
		"""Decodes the next symbol from the given bit input stream based on this
		canonical code. The returned symbol value is in the range [0, len(codelengths))."""
		code: int = 0   # Bits read so far, first bit most significant
		first: int = 0  # First code of the current length
		index: int = 0  # Index of the first symbol of the current length
		for length in range(1, CanonicalCode.MAX_CODE_LENGTH + 1):
			code |= inp.read_uint(1)
			count: int = self.count_by_length[length]
			if 0 <= code - first < count:
				return self.symbols[index + code - first]
			index += count
			first = (first + count) << 1
			code <<= 1
		raise InvalidHuffmanCode("No Huffman code matches the input bits", inp.get_byte_position())
	
	
	def __str__(self) -> str:
		"""Returns a string representation of this canonical code,
		useful for debugging only, and the format is subject to change."""
		lines: List[str] = []
		code: int = 0
		index: int = 0
		for length in range(1, CanonicalCode.MAX_CODE_LENGTH + 1):
			for _ in range(self.count_by_length[length]):
				lines.append(f"Code {code:0{length}b}: Symbol {self.symbols[index]}")
				code += 1
				index += 1
			code <<= 1
		return "\n".join(lines) + "\n"



class ByteHistory:
	
	"""The decompressed output, which doubles as the LZ77 dictionary. Every byte
	written so far is a valid copy source; there is no sliding window limit.
	Mutable and not thread-safe."""
	
	
	# ---- Field ----
	
	_data: bytearray
	
	
	# ---- Constructor ----
	
	def __init__(self):
		self._data = bytearray()
	
	
	# ---- Methods ----
	
	def __len__(self) -> int:
		return len(self._data)
	
	
	def append(self, b: int) -> None:
		self._data.append(b)
	
	
	def extend(self, data: bytes) -> None:
		self._data.extend(data)
	
	
	def copy(self, dist: int, count: int) -> None:
		"""Appends `count` bytes starting at `dist` bytes before the end of this history.
		Note that if the count exceeds the distance, then some of the output
		data will be a copy of data that was copied earlier in the process."""
		if count < 0:
			raise ValueError("Invalid count")
		assert 1 <= dist <= len(self._data), "Distance out of range"
		data = self._data
		for _ in range(count):
			data.append(data[-dist])
	
	
	def getvalue(self) -> bytes:
		return bytes(self._data)



class Decompressor:
	
	# ---- Public functions ----
	
	"""Decompresses raw DEFLATE data (without zlib or gzip container) into bytes."""
	
	@staticmethod
	def decompress_to_bytes(bitin: BitInputStream) -> bytes:
		"""Reads from the given input stream, decompresses the data, and returns a new byte string."""
		return Decompressor(bitin)._output.getvalue()
	
	
	@staticmethod
	def decompress_to_stream(bitin: BitInputStream, out: BinaryIO) -> None:
		"""Reads from the given input stream, decompresses
		the data, and writes to the given output stream."""
		out.write(Decompressor.decompress_to_bytes(bitin))
	
	
	# ---- Private implementation ----
	
	# -- Fields --
	
	_input: BitInputStream
	_output: ByteHistory
	
	
	# -- Constructor --
	
	def __init__(self, bitin: BitInputStream):
		"""Constructor, which immediately performs decompression"""
		
		# Initialize fields
		self._input = bitin
		self._output = ByteHistory()
		
		# Process the stream of blocks
		while True:
			# Read the block header
			isfinal: bool = bitin.read_uint(1) != 0  # bfinal
			type: int = bitin.read_uint(2)  # btype
			
			# Decompress rest of block based on the type
			if type == 0:
				logger.debug("stored block at byte %d", bitin.get_byte_position())
				self._decompress_uncompressed_block()
			elif type == 1:
				logger.debug("fixed Huffman block at byte %d", bitin.get_byte_position())
				self._decompress_huffman_block(Decompressor._FIXED_LITERAL_LENGTH_CODE, Decompressor._FIXED_DISTANCE_CODE)
			elif type == 2:
				logger.debug("dynamic Huffman block at byte %d", bitin.get_byte_position())
				litlencode, distcode = self._decode_huffman_codes()
				self._decompress_huffman_block(litlencode, distcode)
			elif type == 3:
				raise ReservedBlockType("Reserved block type", bitin.get_byte_position())
			else:
				assert False, "Unreachable value"
			if isfinal:
				break
		logger.debug("inflated %d bytes", len(self._output))
	
	
	# -- Constants: The code tables for static Huffman codes (btype = 1) --
	
	_FIXED_LITERAL_LENGTH_CODE = CanonicalCode([8]*144 + [9]*112 + [7]*24 + [8]*8)
	
	_FIXED_DISTANCE_CODE = CanonicalCode([5] * 30)
	
	
	# -- Constants: Base values and extra bit counts for length and distance symbols --
	
	# Indexed by length symbol - 257
	_LENGTH_BASE: Tuple[int, ...] = (
		3, 4, 5, 6, 7, 8, 9, 10, 11, 13, 15, 17, 19, 23, 27, 31,
		35, 43, 51, 59, 67, 83, 99, 115, 131, 163, 195, 227, 258)
	_LENGTH_EXTRA: Tuple[int, ...] = (
		0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 2, 2, 2, 2,
		3, 3, 3, 3, 4, 4, 4, 4, 5, 5, 5, 5, 0)
	
	# Indexed by distance symbol
	_DISTANCE_BASE: Tuple[int, ...] = (
		1, 2, 3, 4, 5, 7, 9, 13, 17, 25, 33, 49, 65, 97, 129, 193,
		257, 385, 513, 769, 1025, 1537, 2049, 3073, 4097, 6145, 8193, 12289, 16385, 24577)
	_DISTANCE_EXTRA: Tuple[int, ...] = (
		0, 0, 0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5, 6, 6,
		7, 7, 8, 8, 9, 9, 10, 10, 11, 11, 12, 12, 13, 13)
	
	# The order in which code length code lengths are transmitted
	_CODE_LENGTH_ORDER: Tuple[int, ...] = (16, 17, 18, 0, 8, 7, 9, 6, 10, 5, 11, 4, 12, 3, 13, 2, 14, 1, 15)
	
	
	# -- Method: Reading and decoding dynamic Huffman codes (btype = 2) --
	
	# Reads from the bit input stream, decodes the Huffman code
	# specifications into code tables, and returns the tables.
	def _decode_huffman_codes(self) -> Tuple[CanonicalCode,CanonicalCode]:
		numlitlencodes: int = self._input.read_uint(5) + 257  # hlit + 257
		numdistcodes: int = self._input.read_uint(5) + 1      # hdist + 1
		
		numcodelencodes: int = self._input.read_uint(4) + 4   # hclen + 4
		codelencodelen: List[int] = [0] * 19
		for i in range(numcodelencodes):
			codelencodelen[Decompressor._CODE_LENGTH_ORDER[i]] = self._input.read_uint(3)
		
		# Create the code length code
		codelencode = CanonicalCode(codelencodelen)
		
		# Read the main code lengths and handle runs
		total: int = numlitlencodes + numdistcodes
		codelens: List[int] = []
		while len(codelens) < total:
			sym: int = codelencode.decode_next_symbol(self._input)
			if 0 <= sym <= 15:
				codelens.append(sym)
				continue
			elif sym == 16:
				if len(codelens) == 0:
					raise InvalidCodeLengths("No code length value to copy", self._input.get_byte_position())
				runval: int = codelens[-1]
				runlen: int = self._input.read_uint(2) + 3
			elif sym == 17:
				runval = 0
				runlen = self._input.read_uint(3) + 3
			elif sym == 18:
				runval = 0
				runlen = self._input.read_uint(7) + 11
			else:
				assert False, "Symbol out of range"
			if len(codelens) + runlen > total:
				raise InvalidCodeLengths("Run exceeds number of codes", self._input.get_byte_position())
			codelens.extend([runval] * runlen)
		
		logger.debug("dynamic code: %d literal/length codes, %d distance codes", numlitlencodes, numdistcodes)
		litlencode = CanonicalCode(codelens[ : numlitlencodes])
		distcode = CanonicalCode(codelens[numlitlencodes : ])
		return (litlencode, distcode)
	
	
	# -- Methods: Block decompression --
	
	# Handles and copies an uncompressed block from the bit input stream.
	def _decompress_uncompressed_block(self) -> None:
		# Discard bits to align to byte boundary, then read length
		header: bytes = self._input.get_bytes(4)
		len : int = header[0] | header[1] << 8
		nlen: int = header[2] | header[3] << 8
		if len ^ 0xFFFF != nlen:
			raise StoredBlockLengthMismatch(len ^ 0xFFFF, nlen, self._input.get_byte_position() - 2)
		
		# Copy bytes
		self._output.extend(self._input.get_bytes(len))
	
	
	# Decompresses a Huffman-coded block from the bit input stream based on the given Huffman codes.
	def _decompress_huffman_block(self, litlencode: CanonicalCode, distcode: CanonicalCode) -> None:
		while True:
			sym: int = litlencode.decode_next_symbol(self._input)
			if sym == 256:  # End of block
				break
			
			if sym < 256:  # Literal byte
				self._output.append(sym)
			else:  # Length and distance for copying
				run: int = self._decode_run_length(sym)
				dist: int = self._decode_distance(distcode.decode_next_symbol(self._input))
				if dist > len(self._output):
					raise InvalidBackReference(dist, len(self._output), self._input.get_byte_position())
				self._output.copy(dist, run)
	
	
	# -- Methods: Symbol decoding --
	
	# Returns the run length based on the given symbol and possibly reading more bits.
	def _decode_run_length(self, sym: int) -> int:
		# Symbols outside the range cannot occur in the bit stream;
		# they would indicate that the decompressor is buggy
		assert 257 <= sym <= 287, f"Invalid run length symbol: {sym}"
		
		# 286 and 287 have codes in the fixed table but no meaning, so a
		# corrupt stream can produce them; reported as an undecodable code
		if sym >= 286:
			raise InvalidHuffmanCode(f"Reserved length symbol: {sym}", self._input.get_byte_position())
		i: int = sym - 257
		return Decompressor._LENGTH_BASE[i] + self._input.read_uint(Decompressor._LENGTH_EXTRA[i])
	
	
	# Returns the distance based on the given symbol and possibly reading more bits.
	def _decode_distance(self, sym: int) -> int:
		assert 0 <= sym <= 31, f"Invalid distance symbol: {sym}"
		
		# 30 and 31 are reachable when HDIST declares 32 distance codes
		if sym >= 30:
			raise InvalidHuffmanCode(f"Reserved distance symbol: {sym}", self._input.get_byte_position())
		return Decompressor._DISTANCE_BASE[sym] + self._input.read_uint(Decompressor._DISTANCE_EXTRA[sym])
