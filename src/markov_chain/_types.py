from collections import Counter, defaultdict

type Token = str
type Occurrences = Counter[Token]
type PartialCountTable = defaultdict[Token, Counter[Token]]
type Transition = tuple[Token, Token]

END_OF_STREAM: Token = ""
