from qppval.model.node import Detail, Node, TemplateId, child_path, root_path, walk_with_paths

__all__ = ["Detail", "Node", "TemplateId", "child_path", "root_path", "walk_with_paths"]
