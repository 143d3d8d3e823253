"""GraphQL documents for the Holibob partner API (Look-to-Book flow)."""

_QUESTION_FIELDS = """
          id
          label
          type
          dataType
          dataFormat
          answerValue
          isRequired
          autoCompleteValue
          availableOptions {
            label
            value
          }
"""

AVAILABILITY_LIST_QUERY = """
  query AvailabilityList($productId: ID!, $sessionId: String, $optionList: [AvailabilityOptionInput!]) {
    availabilityList(productId: $productId, sessionId: $sessionId, optionList: $optionList) {
      sessionId
      nodes {
        id
        date
        guidePriceFormattedText
        soldOut
      }
      optionList {
        nodes {
          id
          label
          value
          required
          type
          dataType
          dataFormat
        }
      }
    }
  }
"""

_AVAILABILITY_DETAIL_FIELDS = """
      id
      date
      startTime
      minParticipants
      maxParticipants
      isValid
      optionList {
        isComplete
        nodes {
          id
          label
          dataType
          dataFormat
          availableOptions {
            label
            value
          }
          answerValue
          answerFormattedText
        }
      }
      totalPrice {
        grossFormattedText
        gross
        currency
      }
      pricingCategoryList {
        nodes {
          id
          label
          minParticipants
          maxParticipants
          maxParticipantsDepends {
            pricingCategoryId
            multiplier
            explanation
          }
          units
          unitPrice {
            grossFormattedText
            gross
            currency
          }
          totalPrice {
            grossFormattedText
            gross
            currency
          }
        }
      }
"""

AVAILABILITY_QUERY = (
    """
  query Availability($id: ID!) {
    availability(id: $id) {"""
    + _AVAILABILITY_DETAIL_FIELDS
    + """
    }
  }
"""
)

# Options and pricing are both applied through the availability input
AVAILABILITY_SET_QUERY = (
    """
  query AvailabilitySet($id: ID!, $input: AvailabilityInput!) {
    availability(id: $id, input: $input) {"""
    + _AVAILABILITY_DETAIL_FIELDS
    + """
    }
  }
"""
)

BOOKING_CREATE_MUTATION = """
  mutation BookingCreate($input: BookingCreateInput!) {
    bookingCreate(input: $input) {
      id
      code
      state
      isComplete
      paymentState
    }
  }
"""

BOOKING_ADD_AVAILABILITY_MUTATION = """
  mutation BookingAddAvailability($input: BookingAddAvailabilityInput!) {
    bookingAddAvailability(input: $input) {
      isComplete
    }
  }
"""

_BOOKING_QUESTION_TREE = (
    """
      id
      code
      leadPassengerName
      state
      paymentState
      canCommit
      totalPrice {
        grossFormattedText
        gross
        currency
      }
      questionList {
        nodes {"""
    + _QUESTION_FIELDS
    + """
        }
      }
      availabilityList {
        nodes {
          id
          date
          startTime
          product {
            id
            name
          }
          questionList {
            nodes {"""
    + _QUESTION_FIELDS
    + """
            }
          }
          personList {
            nodes {
              id
              pricingCategoryLabel
              isQuestionsComplete
              questionList {
                nodes {"""
    + _QUESTION_FIELDS
    + """
                }
              }
            }
          }
        }
      }
"""
)

BOOKING_QUESTIONS_QUERY = (
    """
  query BookingQuestions($id: ID!) {
    booking(id: $id) {"""
    + _BOOKING_QUESTION_TREE
    + """
    }
  }
"""
)

BOOKING_ANSWER_QUESTIONS_QUERY = (
    """
  query BookingAnswerQuestions($id: ID!, $input: BookingInput!) {
    booking(id: $id, input: $input) {"""
    + _BOOKING_QUESTION_TREE
    + """
    }
  }
"""
)

BOOKING_COMMIT_MUTATION = """
  mutation BookingCommit($bookingSelector: BookingSelectorInput!) {
    bookingCommit(bookingSelector: $bookingSelector) {
      id
      code
      state
      voucherUrl
    }
  }
"""

BOOKING_STATE_QUERY = """
  query BookingState($id: ID!) {
    booking(id: $id) {
      id
      code
      state
      voucherUrl
      totalPrice {
        grossFormattedText
        gross
        currency
      }
    }
  }
"""

BOOKING_FULL_QUERY = """
  query BookingFull($id: ID!) {
    booking(id: $id) {
      id
      code
      state
      leadPassengerName
      paymentState
      voucherUrl
      canCommit
      totalPrice {
        grossFormattedText
        gross
        currency
      }
      availabilityList {
        nodes {
          id
          date
          startTime
          product {
            id
            name
          }
          totalPrice {
            grossFormattedText
            gross
            currency
          }
          personList {
            nodes {
              id
              pricingCategoryLabel
            }
          }
        }
      }
    }
  }
"""

BOOKING_CANCEL_MUTATION = """
  mutation BookingCancel($bookingSelector: BookingSelectorInput!, $reason: String) {
    bookingCancel(bookingSelector: $bookingSelector, reason: $reason) {
      id
      code
      state
    }
  }
"""

BOOKING_STRIPE_PAYMENT_INTENT_QUERY = """
  query BookingStripePaymentIntent($id: ID!) {
    booking(id: $id) {
      id
      paymentIntent {
        id
        clientSecret
        apiKey
        amount
      }
    }
  }
"""
