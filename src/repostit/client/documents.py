"""
GraphQL documents used by the frontend.

Every selection asks for `__typename` so results can be normalized.
"""

REGULAR_USER = """
fragment RegularUser on User {
  __typename
  id
  username
}
"""

REGULAR_ERROR = """
fragment RegularError on FieldError {
  __typename
  field
  message
}
"""

REGULAR_USER_RESPONSE = (
    """
fragment RegularUserResponse on UserResponse {
  __typename
  errors {
    ...RegularError
  }
  user {
    ...RegularUser
  }
}
"""
    + REGULAR_ERROR
    + REGULAR_USER
)

POST_SNIPPET = (
    """
fragment PostSnippet on Post {
  __typename
  id
  createdAt
  updatedAt
  title
  points
  textSnippet
  voteStatus
  creatorId
  creator {
    ...RegularUser
  }
}
"""
    + REGULAR_USER
)

ME_QUERY = (
    """
query Me {
  me {
    ...RegularUser
  }
}
"""
    + REGULAR_USER
)

POSTS_QUERY = (
    """
query Posts($limit: Int!, $cursor: String) {
  posts(limit: $limit, cursor: $cursor) {
    __typename
    hasMore
    posts {
      ...PostSnippet
    }
  }
}
"""
    + POST_SNIPPET
)

POST_QUERY = (
    """
query Post($id: Int!) {
  post(id: $id) {
    __typename
    id
    createdAt
    updatedAt
    title
    text
    points
    voteStatus
    creatorId
    creator {
      ...RegularUser
    }
  }
}
"""
    + REGULAR_USER
)

LOGIN_MUTATION = (
    """
mutation Login($usernameOrEmail: String!, $password: String!) {
  login(usernameOrEmail: $usernameOrEmail, password: $password) {
    ...RegularUserResponse
  }
}
"""
    + REGULAR_USER_RESPONSE
)

REGISTER_MUTATION = (
    """
mutation Register($options: UsernamePasswordInput!) {
  register(options: $options) {
    ...RegularUserResponse
  }
}
"""
    + REGULAR_USER_RESPONSE
)

LOGOUT_MUTATION = """
mutation Logout {
  logout
}
"""

FORGOT_PASSWORD_MUTATION = """
mutation ForgotPassword($email: String!) {
  forgotPassword(email: $email)
}
"""

CHANGE_PASSWORD_MUTATION = (
    """
mutation ChangePassword($token: String!, $newPassword: String!) {
  changePassword(token: $token, newPassword: $newPassword) {
    ...RegularUserResponse
  }
}
"""
    + REGULAR_USER_RESPONSE
)

CREATE_POST_MUTATION = """
mutation CreatePost($input: PostInput!) {
  createPost(input: $input) {
    __typename
    id
    createdAt
    updatedAt
    title
    text
    points
    creatorId
  }
}
"""

UPDATE_POST_MUTATION = """
mutation UpdatePost($id: Int!, $title: String!, $text: String!) {
  updatePost(id: $id, title: $title, text: $text) {
    __typename
    id
    title
    text
    textSnippet
  }
}
"""

DELETE_POST_MUTATION = """
mutation DeletePost($id: Int!) {
  deletePost(id: $id)
}
"""

VOTE_MUTATION = """
mutation Vote($value: Int!, $postId: Int!) {
  vote(value: $value, postId: $postId)
}
"""
