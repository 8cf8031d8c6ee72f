#!/usr/bin/env python3
"""
Based on Jamie Zawinski's algorithm described at:
https://www.jwz.org/doc/threading.html

Messages handed to thread() only need to satisfy the Threadable protocol.
The result is written back onto the messages themselves: the returned root
links to further roots through set_next() and to its replies through
set_child().
"""

import logging
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

logger = logging.getLogger(__name__)

NO_SUBJECT = "(no subject)"


class ThreadingError(RuntimeError):
    """An internal invariant of the threading algorithm was violated"""


@runtime_checkable
class Threadable(Protocol):
    """What the threader needs from a message"""

    @property
    def message_id(self) -> str: ...

    @property
    def references(self) -> Sequence[str]: ...

    @property
    def simplified_subject(self) -> str: ...

    @property
    def subject_is_reply(self) -> bool: ...

    def is_dummy(self) -> bool: ...

    def make_dummy(self) -> "Threadable": ...

    def set_child(self, child: Optional["Threadable"]) -> None: ...

    def set_next(self, next: Optional["Threadable"]) -> None: ...


def simplify_subject(subject: Optional[str]) -> Tuple[str, bool]:
    """Strip Re:, Re[n]: and Re(n): prefixes from a subject.

    Returns the simplified subject and whether any reply marker was found.
    """
    if not subject:
        return "", False

    length = len(subject)
    start = 0
    is_reply = False

    done = False
    while not done:
        done = True

        while start < length and subject[start] == " ":
            start += 1

        if start < length - 2 and subject[start:start + 2].lower() == "re":
            marker = subject[start + 2]
            if marker == ":":
                start += 3
                is_reply = True
                done = False
            elif marker in "[(":
                i = start + 3
                while i < length and "0" <= subject[i] <= "9":
                    i += 1
                if i < length - 1 and subject[i] in "])" and subject[i + 1] == ":":
                    start = i + 2
                    is_reply = True
                    done = False

    end = length
    while end > start and subject[end - 1] < " ":
        end -= 1

    simplified = subject if start == 0 and end == length else subject[start:end]
    if simplified == NO_SUBJECT:
        simplified = ""
    return simplified, is_reply


class Container:
    """Container object for threading algorithm"""

    def __init__(self, message: Optional[Threadable] = None):
        self.message = message
        self.parent: Optional['Container'] = None
        self.children: List['Container'] = []

    def __repr__(self):
        return '<Container %x: %r>' % (id(self), self.message)

    def is_dummy(self) -> bool:
        """Check if this is an empty container (no message)"""
        return self.message is None

    def add_child(self, child: 'Container'):
        """Link a child container in front of the existing children"""
        if child.parent:
            child.parent.remove_child(child)

        child.parent = self
        self.children.insert(0, child)

    def remove_child(self, child: 'Container'):
        """Unlink a child container"""
        for i, kid in enumerate(self.children):
            if kid is child:
                del self.children[i]
                child.parent = None
                return
        raise ThreadingError("Didn't find %r in parent %r" % (child, self))

    def has_descendant(self, container: 'Container') -> bool:
        """Check if container is a descendant of this container"""
        stack = list(self.children)
        seen = set()
        while stack:
            node = stack.pop()
            if node is container:
                return True
            if id(node) in seen:
                continue
            seen.add(id(node))
            stack.extend(node.children)
        return False

    def representative(self) -> Threadable:
        """The message whose subject stands for this container"""
        if self.message is not None:
            return self.message
        return self.children[0].message

    def reverse_children(self):
        """Reverse the order of children at every level below this container"""
        stack = [self]
        while stack:
            node = stack.pop()
            node.children.reverse()
            stack.extend(node.children)

    def flush(self):
        """Copy the container tree onto the underlying messages"""
        stack = [self]
        while stack:
            node = stack.pop()
            kids = node.children
            for i, kid in enumerate(kids):
                if kid.message is None:
                    raise ThreadingError("no message in %r" % kid)
                kid.message.set_child(kid.children[0].message if kid.children else None)
                kid.message.set_next(kids[i + 1].message if i + 1 < len(kids) else None)
                stack.append(kid)
            node.children = []
            node.parent = None
            node.message = None


class Threader:
    """Thread a batch of messages into a forest of replies"""

    def __init__(self):
        self.root: Optional[Container] = None
        self.id_table: Dict[str, Container] = {}
        self.bogus_id_count = 0

    def thread(self, messages: Optional[Iterable[Threadable]]) -> Optional[Threadable]:
        if messages is None:
            return None

        # Step 1: Build the container tree from messages and references
        self.id_table = {}
        self.bogus_id_count = 0
        for message in messages:
            if not message.is_dummy():
                self.build_container(message)

        # Step 2: Find root containers (those with no parent)
        self.root = self.find_root_set()
        self.id_table = {}

        # Step 3: Prune empty containers
        self.prune_empty_containers(self.root)

        # Step 4: Restore arrival order, then group by subject
        self.root.reverse_children()
        self.gather_subjects()

        if self.root.parent is not None:
            raise ThreadingError("root node has a parent: %r" % self.root.parent)

        # Step 5: Give dummy roots a message of their own
        for container in self.root.children:
            if container.message is None:
                container.message = container.children[0].message.make_dummy()

        logger.debug("threaded into %d root(s)", len(self.root.children))

        # Step 6: Copy the structure onto the messages
        result = self.root.children[0].message if self.root.children else None
        self.root.flush()
        self.root = None
        return result

    def build_container(self, message: Threadable):
        """Add one message, and the references it names, to the id table"""
        message_id = message.message_id
        container = self.id_table.get(message_id)

        if container is not None:
            if container.message is not None:
                # Duplicate id, keep both messages under a made up id
                message_id = "bogus-%d" % self.bogus_id_count
                self.bogus_id_count += 1
                logger.debug("duplicate message id %r filed as %r",
                             message.message_id, message_id)
                container = None
            else:
                # Forward reference seen earlier
                container.message = message

        if container is None:
            container = Container(message)
            self.id_table[message_id] = container

        parent_ref = None
        for ref_id in message.references:
            ref = self.id_table.get(ref_id)
            if ref is None:
                ref = Container()
                self.id_table[ref_id] = ref

            # Link references in header order unless already linked or it would loop
            if (parent_ref is not None
                    and ref.parent is None
                    and parent_ref is not ref
                    and not ref.has_descendant(parent_ref)):
                parent_ref.add_child(ref)

            parent_ref = ref

        if parent_ref is not None and (parent_ref is container or container.has_descendant(parent_ref)):
            parent_ref = None

        # A parent guessed from someone else's references gives way to our own
        if container.parent is not None:
            container.parent.remove_child(container)

        if parent_ref is not None:
            parent_ref.add_child(container)

    def find_root_set(self) -> Container:
        root = Container()
        for container in self.id_table.values():
            if container.parent is None:
                root.children.insert(0, container)
        return root

    def prune_empty_containers(self, top: Container):
        """Delete empty containers, promoting their children where needed"""
        stack: List[Tuple[Container, Optional[List[Container]]]] = [(top, None)]
        while stack:
            parent, siblings = stack.pop()
            if siblings is not None:
                self.recheck_kept_dummy(parent, siblings)
                continue

            kids = parent.children
            i = 0
            while i < len(kids):
                container = kids[i]
                if container.message is None and not container.children:
                    del kids[i]
                elif container.message is None and (container.parent is not None
                                                    or len(container.children) == 1):
                    # Splice the children into our place and look at them next
                    promoted = container.children
                    for child in promoted:
                        child.parent = container.parent
                    kids[i:i + 1] = promoted
                    container.children = []
                else:
                    if container.message is None:
                        # Look again once its children have been pruned
                        stack.append((container, kids))
                    if container.children:
                        stack.append((container, None))
                    i += 1

    def recheck_kept_dummy(self, container: Container, siblings: List[Container]):
        """Drop a kept dummy left with no children, promote a lone child"""
        if len(container.children) > 1:
            return

        for i, kid in enumerate(siblings):
            if kid is container:
                break
        else:
            raise ThreadingError("Didn't find %r among its siblings" % container)

        for child in container.children:
            child.parent = container.parent
        siblings[i:i + 1] = container.children
        container.children = []

    def build_subject_table(self) -> Dict[str, Container]:
        subject_table: Dict[str, Container] = {}

        for container in self.root.children:
            subject = container.representative().simplified_subject
            if not subject:
                continue

            old = subject_table.get(subject)
            # A dummy beats a message, and an original beats a reply
            if (old is None
                    or (container.message is None and old.message is not None)
                    or (old.message is not None
                        and old.message.subject_is_reply
                        and container.message is not None
                        and not container.message.subject_is_reply)):
                subject_table[subject] = container

        return subject_table

    def gather_subjects(self):
        """Merge root containers that share a simplified subject"""
        subject_table = self.build_subject_table()
        if not subject_table:
            return

        kept: List[Container] = []
        for container in list(self.root.children):
            subject = container.representative().simplified_subject
            old = subject_table.get(subject) if subject else None
            if old is None or old is container:
                kept.append(container)
                continue

            self.merge(container, old)

        self.root.children = kept

    def merge(self, container: Container, old: Container):
        """Fold a root container into the table entry for its subject"""
        if old.message is None and container.message is None:
            # Both dummies, old takes over the children
            for child in container.children:
                child.parent = old
            old.children.extend(container.children)
            container.children = []
        elif old.message is None or (container.message is not None
                                     and container.message.subject_is_reply
                                     and not old.message.subject_is_reply):
            container.parent = old
            old.children.insert(0, container)
        else:
            # Neither is a reply to the other: both go under a new dummy
            moved = Container(old.message)
            moved.children = old.children
            for child in moved.children:
                child.parent = moved

            old.message = None
            container.parent = old
            moved.parent = old
            old.children = [container, moved]


def thread(messages: Optional[Iterable[Threadable]]) -> Optional[Threadable]:
    """Thread messages and return the first root"""
    return Threader().thread(messages)
