"""GraphQL documents used by the comment client."""

COMMENT_FIELDS = """
  _id
  content
  creator { _id name avatar }
  post
  createdAt
  updatedAt
  parentId
  likesCount
  likes { _id }
  repliesCount
"""

POST_FIELDS = """
  _id
  title
  creator { _id }
  likesCount
  commentsCount
  createdAt
"""

PAGINATED_COMMENTS = f"""
query PaginatedComments($postId: ID!, $page: Int!, $limit: Int!) {{
  paginatedComments(postId: $postId, page: $page, limit: $limit) {{
    comments {{
      {COMMENT_FIELDS}
      replies {{ {COMMENT_FIELDS} }}
    }}
    totalComments
    hasMore
  }}
}}
"""

PAGINATED_REPLIES = f"""
query PaginatedReplies($commentId: ID!, $page: Int!, $limit: Int!) {{
  paginatedReplies(commentId: $commentId, page: $page, limit: $limit) {{
    replies {{ {COMMENT_FIELDS} }}
    totalReplies
    hasMore
  }}
}}
"""

ADD_COMMENT = f"""
mutation AddComment($content: String!, $postId: ID!, $parentId: ID) {{
  addComment(commentInput: {{ content: $content, postId: $postId, parentId: $parentId }}) {{
    {COMMENT_FIELDS}
  }}
}}
"""

UPDATE_COMMENT = f"""
mutation UpdateComment($commentId: ID!, $content: String!) {{
  updateComment(commentId: $commentId, content: $content) {{
    {COMMENT_FIELDS}
  }}
}}
"""

DELETE_COMMENT = """
mutation DeleteComment($commentId: ID!) {
  deleteComment(commentId: $commentId)
}
"""

LIKE_COMMENT = """
mutation LikeComment($commentId: ID!) {
  likeComment(commentId: $commentId) { _id likesCount likes { _id } }
}
"""

UNLIKE_COMMENT = """
mutation UnlikeComment($commentId: ID!) {
  unlikeComment(commentId: $commentId) { _id likesCount likes { _id } }
}
"""

FETCH_POST = f"""
query FetchPost($id: ID!) {{
  post(id: $id) {{ {POST_FIELDS} }}
}}
"""

FETCH_POSTS = f"""
query FetchPosts($page: Int!, $limit: Int!) {{
  posts(page: $page, limit: $limit) {{
    posts {{ {POST_FIELDS} }}
    totalPosts
  }}
}}
"""

FETCH_USER_POSTS = f"""
query FetchUserPosts($userId: ID!, $page: Int!, $limit: Int!) {{
  userPosts(userId: $userId, page: $page, limit: $limit) {{
    posts {{ {POST_FIELDS} }}
    totalPosts
  }}
}}
"""
