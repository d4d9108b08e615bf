# 
# Simple gzip decompressor (Python)
# 
# Copyright (c) Project Nayuki
# MIT License. See readme file.
# https://www.nayuki.io/page/simple-deflate-decompressor
# 

import heapq, itertools
from typing import Dict, List, NamedTuple, Optional, Tuple, Union


class Leaf(NamedTuple):
	symbol: str


class Internal(NamedTuple):
	left: int
	right: int


Node = Union[Leaf, Internal]


class HuffmanCoder:
	
	"""A character-level Huffman coder for text, unrelated to DEFLATE. The code tree
	is built from the character frequencies of the given text and is stored as a flat
	list of nodes, where internal nodes refer to their children by list index.
	Codes are strings of '0' (left) and '1' (right) characters.
	
	Example for the text "ABRACADABRA":
	  Frequencies: A=5, B=2, R=2, C=1, D=1
	  Codes: A=0, C=100, D=101, B=110, R=111"""
	
	
	# ---- Fields ----
	
	# Arena of tree nodes. Leaves and internal nodes share one index space.
	nodes: List[Node]
	
	# Index of the root in 'nodes', or None for an empty text.
	root: Optional[int]
	
	# Maps each character of the text to its code.
	codes: Dict[str,str]
	
	_text: str
	
	
	# ---- Constructor ----
	
	def __init__(self, text: str):
		self._text = text
		self.nodes = []
		self.codes = {}
		
		freqs: Dict[str,int] = {}
		for ch in text:
			freqs[ch] = freqs.get(ch, 0) + 1
		
		# Entries are (frequency, insertion sequence, node index); the sequence breaks ties
		sequence = itertools.count()
		queue: List[Tuple[int,int,int]] = []
		for ch in sorted(freqs):
			self.nodes.append(Leaf(ch))
			queue.append((freqs[ch], next(sequence), len(self.nodes) - 1))
		heapq.heapify(queue)
		
		while len(queue) > 1:
			leftfreq, _, left = heapq.heappop(queue)
			rightfreq, _, right = heapq.heappop(queue)
			self.nodes.append(Internal(left, right))
			heapq.heappush(queue, (leftfreq + rightfreq, next(sequence), len(self.nodes) - 1))
		
		self.root = queue[0][2] if len(queue) > 0 else None
		if self.root is not None:
			self._assign_codes()
	
	
	def _assign_codes(self) -> None:
		root: Node = self.nodes[self.root]
		if isinstance(root, Leaf):
			self.codes[root.symbol] = "0"  # A lone symbol still needs one bit per occurrence
			return
		stack: List[Tuple[int,str]] = [(self.root, "")]
		while len(stack) > 0:
			index, prefix = stack.pop()
			node: Node = self.nodes[index]
			if isinstance(node, Leaf):
				self.codes[node.symbol] = prefix
			else:
				stack.append((node.right, prefix + "1"))
				stack.append((node.left, prefix + "0"))
	
	
	# ---- Methods ----
	
	def encode(self, text: Optional[str] = None) -> str:
		"""Encodes the given text, or the text this coder was built from. Raises
		KeyError for a character that does not occur in the original text."""
		if text is None:
			text = self._text
		return "".join(self.codes[ch] for ch in text)
	
	
	def decode(self, bits: str) -> str:
		"""Decodes a string of '0' and '1' characters back into text."""
		if self.root is None:
			if len(bits) > 0:
				raise ValueError("Cannot decode bits with an empty code")
			return ""
		root: Node = self.nodes[self.root]
		if isinstance(root, Leaf):
			if any(b != "0" for b in bits):
				raise ValueError("Invalid code bit for single-symbol code")
			return root.symbol * len(bits)
		
		result: List[str] = []
		index: int = self.root
		for b in bits:
			node: Node = self.nodes[index]
			assert isinstance(node, Internal), "Unreachable state"
			if b == "0":
				index = node.left
			elif b == "1":
				index = node.right
			else:
				raise ValueError(f"Invalid code bit: {b!r}")
			child: Node = self.nodes[index]
			if isinstance(child, Leaf):
				result.append(child.symbol)
				index = self.root
		if index != self.root:
			raise ValueError("Incomplete code at end of input")
		return "".join(result)
