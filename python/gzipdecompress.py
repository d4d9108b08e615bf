# 
# Simple gzip decompressor (Python)
# 
# Copyright (c) Project Nayuki
# MIT License. See readme file.
# https://www.nayuki.io/page/simple-deflate-decompressor
# 

import argparse, dataclasses, datetime, logging, pathlib, sys
from typing import Dict, List, Optional, Tuple
import deflatedecompress, huffmancoder
from deflatedecompress import DecompressionError, UnexpectedEndOfInput


logger = logging.getLogger(__name__)


ID1: int = 0x1F
ID2: int = 0x8B
COMPRESSION_METHOD: int = 8

FTEXT   : int = 0x01
FHCRC   : int = 0x02
FEXTRA  : int = 0x04
FNAME   : int = 0x08
FCOMMENT: int = 0x10
FRESERVED: int = 0xE0

HEADER_SIZE: int = 10
TRAILER_SIZE: int = 8

OPERATING_SYSTEMS: Dict[int,str] = {
	  0: "FAT",
	  1: "Amiga",
	  2: "VMS",
	  3: "Unix",
	  4: "VM/CMS",
	  5: "Atari TOS",
	  6: "HPFS",
	  7: "Macintosh",
	  8: "Z-System",
	  9: "CP/M",
	 10: "TOPS-20",
	 11: "NTFS",
	 12: "QDOS",
	 13: "Acorn RISCOS",
	255: "Unknown",
}


# ---- Errors ----

class TruncatedHeader(UnexpectedEndOfInput):
	pass


class InvalidMagic(DecompressionError):
	
	expected: int
	actual: int
	
	def __init__(self, expected: int, actual: int, offset: int):
		super().__init__(f"Invalid GZIP magic number: expected={expected:02X}, actual={actual:02X}", offset)
		self.expected = expected
		self.actual = actual


class UnsupportedMethod(DecompressionError):
	
	actual: int
	
	def __init__(self, actual: int, offset: int):
		super().__init__(f"Unsupported compression method: {actual}", offset)
		self.actual = actual


class InvalidEncoding(DecompressionError):
	pass


class HeaderAlreadyParsed(RuntimeError):
	pass



@dataclasses.dataclass(frozen=True)
class Header:
	
	"""Metadata from a gzip member header."""
	
	name: str = ""
	comment: str = ""
	extra: bytes = b""
	modtime: int = 0
	os: int = 0
	flags: int = 0
	extra_flags: int = 0
	header_crc: Optional[int] = None
	
	
	@property
	def is_text(self) -> bool:
		return self.flags & FTEXT != 0
	
	
	@property
	def os_name(self) -> str:
		return OPERATING_SYSTEMS.get(self.os, "Really unknown")
	
	
	def modified(self) -> Optional[datetime.datetime]:
		"""Returns the modification time in UTC, or None if the header has none."""
		if self.modtime == 0:
			return None
		return datetime.datetime.fromtimestamp(self.modtime, datetime.timezone.utc)



@dataclasses.dataclass(frozen=True)
class Trailer:
	crc32: int
	isize: int



class GzipDecoder:
	
	"""Decodes a single gzip member held entirely in memory. The CRC-32 and ISIZE
	trailer fields and the optional header CRC-16 are read but not verified."""
	
	
	# ---- Fields ----
	
	header: Header
	
	# None until a decode has read past the final block.
	trailer: Optional[Trailer]
	
	_data: bytes
	
	# Offset of the next unread header byte, then of the DEFLATE payload.
	_pos: int
	
	_header_parsed: bool
	
	
	# ---- Constructor ----
	
	def __init__(self, data: bytes):
		self.header = Header()
		self.trailer = None
		self._data = bytes(data)
		self._pos = 0
		self._header_parsed = False
	
	
	# ---- Methods ----
	
	def parse_header(self) -> Header:
		"""Parses the fixed prologue and the optional fields that follow it.
		May be called at most once per decoder, even if the first call failed."""
		if self._header_parsed or self._pos != 0:
			raise HeaderAlreadyParsed("Header already parsed")
		if len(self._data) < HEADER_SIZE:
			raise TruncatedHeader(f"Input too short for gzip header: {len(self._data)} bytes", 0)
		
		for expected in (ID1, ID2):
			actual: int = self._read_byte()
			if actual != expected:
				raise InvalidMagic(expected, actual, self._pos - 1)
		compmeth: int = self._read_byte()
		if compmeth != COMPRESSION_METHOD:
			raise UnsupportedMethod(compmeth, self._pos - 1)
		flags: int = self._read_byte()
		if flags & FRESERVED != 0:
			logger.warning("reserved flags are set: %02X", flags & FRESERVED)
		modtime: int = self._read_little_int(4)
		extraflags: int = self._read_byte()
		osbyte: int = self._read_byte()
		
		extra: bytes = b""
		name: str = ""
		comment: str = ""
		headercrc: Optional[int] = None
		if flags & FEXTRA != 0:
			extra = self._read_bytes(self._read_little_int(2))
		if flags & FNAME != 0:
			name = self._read_null_terminated_string()
		if flags & FCOMMENT != 0:
			comment = self._read_null_terminated_string()
		if flags & FHCRC != 0:
			headercrc = self._read_little_int(2)
		
		self.header = Header(name=name, comment=comment, extra=extra, modtime=modtime,
			os=osbyte, flags=flags, extra_flags=extraflags, header_crc=headercrc)
		self._header_parsed = True
		logger.debug("gzip header: %r, payload at byte %d", self.header, self._pos)
		return self.header
	
	
	def decode(self) -> bytes:
		"""Parses the header if that has not been done yet, then inflates the
		DEFLATE payload and returns the decompressed bytes."""
		if not self._header_parsed:
			self.parse_header()
		bitin = deflatedecompress.BitInputStream(self._data, self._pos)
		result: bytes = deflatedecompress.Decompressor.decompress_to_bytes(bitin)
		
		end: int = bitin.get_byte_position()
		if len(self._data) - end >= TRAILER_SIZE:
			self.trailer = Trailer(
				crc32=int.from_bytes(self._data[end : end + 4], "little"),
				isize=int.from_bytes(self._data[end + 4 : end + 8], "little"))
		else:
			logger.debug("no trailer after payload ending at byte %d", end)
			self.trailer = None
		return result
	
	
	# -- Helper read functions based on '_data' --
	
	def _read_bytes(self, count: int) -> bytes:
		end: int = self._pos + count
		if end > len(self._data):
			raise TruncatedHeader(f"Unexpected end of header: need {count} bytes", self._pos)
		result: bytes = self._data[self._pos : end]
		self._pos = end
		return result
	
	
	def _read_byte(self) -> int:
		return self._read_bytes(1)[0]
	
	
	def _read_little_int(self, size: int) -> int:
		return int.from_bytes(self._read_bytes(size), "little")
	
	
	def _read_null_terminated_string(self) -> str:
		start: int = self._pos
		end: int = self._data.find(b"\x00", start)
		if end == -1:
			raise TruncatedHeader("Unterminated string in header", start)
		self._pos = end + 1
		try:
			return self._data[start : end].decode("UTF-8")
		except UnicodeDecodeError as e:
			raise InvalidEncoding(f"Header string is not valid UTF-8: {e.reason}", start + e.start) from e



def decompress(data: bytes) -> Tuple[Header, bytes]:
	"""Decodes a complete gzip stream, returning its header and the decompressed bytes."""
	decoder = GzipDecoder(data)
	result: bytes = decoder.decode()
	return (decoder.header, result)


def as_text(data: bytes) -> Optional[str]:
	"""Returns the data as a string if it is valid UTF-8, otherwise None."""
	try:
		return data.decode("UTF-8")
	except UnicodeDecodeError:
		return None



# ---- Command line ----

def describe_header(header: Header) -> List[str]:
	lines: List[str] = []
	dt: Optional[datetime.datetime] = header.modified()
	lines.append(f"Last modified: {dt}" if dt is not None else "Last modified: N/A")
	if header.extra_flags == 2:
		lines.append("Extra flags: Maximum compression")
	elif header.extra_flags == 4:
		lines.append("Extra flags: Fastest compression")
	else:
		lines.append(f"Extra flags: Unknown ({header.extra_flags})")
	lines.append(f"Operating system: {header.os_name}")
	if header.is_text:
		lines.append("Flag: Text")
	if header.flags & FEXTRA != 0:
		lines.append(f"Flag: Extra ({len(header.extra)} bytes)")
	if header.flags & FNAME != 0:
		lines.append(f"File name: {header.name}")
	if header.flags & FCOMMENT != 0:
		lines.append(f"Comment: {header.comment}")
	if header.header_crc is not None:
		lines.append(f"Header CRC-16: {header.header_crc:04X}")
	return lines


def _build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="gzip-decompress", description="Simple gzip decompressor")
	parser.add_argument("-v", "--verbose", action="store_true", help="log block-level details")
	commands = parser.add_subparsers(dest="command", required=True)
	
	extract = commands.add_parser("extract", help="decompress a gzip file")
	extract.add_argument("input", type=pathlib.Path, metavar="InputFile.gz")
	extract.add_argument("output", type=pathlib.Path, nargs="?", metavar="OutputFile",
		help="where to write the data; printed as text if omitted")
	
	info = commands.add_parser("info", help="show the gzip header only")
	info.add_argument("input", type=pathlib.Path, metavar="InputFile.gz")
	
	compress = commands.add_parser("compress", help="demonstrate the text Huffman coder")
	compress.add_argument("text")
	return parser


def _read_input(infile: pathlib.Path) -> bytes:
	if not infile.exists():
		raise FileNotFoundError(f"Input file does not exist: {infile}")
	if infile.is_dir():
		raise IsADirectoryError(f"Input file is a directory: {infile}")
	return infile.read_bytes()


def main(argv: List[str]) -> Optional[str]:
	args = _build_parser().parse_args(argv[1 : ])
	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
		format="%(levelname)s:%(name)s: %(message)s")
	
	if args.command == "compress":
		coder = huffmancoder.HuffmanCoder(args.text)
		encoded: str = coder.encode()
		print(encoded)
		print(coder.decode(encoded))
		return None
	
	try:
		decoder = GzipDecoder(_read_input(args.input))
		if args.command == "info":
			decoder.parse_header()
			for line in describe_header(decoder.header):
				print(line)
			return None
		
		decomp: bytes = decoder.decode()
		for line in describe_header(decoder.header):
			print(line)
		
		if args.output is not None:
			args.output.write_bytes(decomp)
		else:
			text: Optional[str] = as_text(decomp)
			if text is None:
				return f"Decompressed data ({len(decomp)} bytes) is not decodable as text"
			sys.stdout.write(text)
	except DecompressionError as e:
		return f"Invalid or corrupt compressed data: {e}"
	except OSError as e:
		return f"I/O exception: {e}"
	return None  # Success, no error message


def cli() -> None:
	errmsg = main(sys.argv)
	if errmsg is not None:
		sys.exit(errmsg)


if __name__ == "__main__":
	cli()
